
from typing import Dict

COMMAND_DELIMITER = "-"

# These belong to the Unity launcher itself; they show up in the same command line but they're not ours.
# Stored lowercase since all lookups are case-insensitive.
RESERVED_FLAGS = frozenset(flag.lower() for flag in [
    "batchmode",
    "quit",
    "nographics",
    "projectPath",
    "executeMethod",
    "logFile",
    "silent-crashes",
])

def parse_command_line(commands: str) -> Dict[str, str]:
    """Turns a raw command line into a lowercase-keyed dict.

    Both `-key=value` and `-key value` are accepted. Tokens that aren't flags are ignored
    unless they're consumed as the value of the flag right before them.
    """
    result = {}
    args = commands.split()

    i = 0
    while i < len(args):
        token = args[i]
        i += 1

        if not token.startswith(COMMAND_DELIMITER):
            continue

        arg = token.lstrip(COMMAND_DELIMITER)

        if "=" in arg:
            key, value = arg.split("=", 1)
        elif i < len(args) and not args[i].startswith(COMMAND_DELIMITER):
            key, value = arg, args[i]
            i += 1 # we ate the value
        else:
            # bare switch with nothing after it; we have no use for those
            continue

        if not key or key.lower() in RESERVED_FLAGS:
            continue

        result[key.lower()] = value

    return result

class CommandLineArguments:
    arguments = None

    def __init__(self, commands: str):
        self.arguments = parse_command_line(commands)

    def get(self, key: str) -> str:
        return self.arguments.get(key.lower(), "")

    def get_bool(self, key: str) -> bool:
        return self.get(key).strip().lower() == "true"

    def __contains__(self, key: str) -> bool:
        return key.lower() in self.arguments

    def __str__(self) -> str:
        return ", ".join(f"{key}={value}" for key, value in self.arguments.items())
