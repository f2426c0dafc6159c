
# Everything fatal derives from BuilderError; `main()` catches it.
# The two warnings are never raised past the engine; they get attached to a StepResult instead.

class BuilderError(Exception):
    pass

class ConfigurationError(BuilderError):
    """Missing or invalid input, detected before anything is touched."""

class PlatformSwitchError(BuilderError):
    """The editor refused to switch to the requested build target."""

class PipelineError(BuilderError):
    """An external pipeline (player build or Addressables) reported failure."""

class DegradedStepWarning(Warning):
    pass

class PersistenceWarning(Warning):
    pass
