
import logging
import os
import pathlib
import platform
import subprocess

logger = logging.getLogger(__name__)

def reveal(location: str) -> None:
    """Opens the folder containing `location` in the platform's file manager."""
    path = pathlib.Path(location)
    folder = path if path.is_dir() else path.parent

    system = platform.system()
    if system == "Windows":
        os.startfile(str(folder))
    elif system == "Darwin":
        subprocess.call(["open", str(folder)])
    else:
        subprocess.call(["xdg-open", str(folder)])

class BatchNotifier:
    def build_succeeded(self, location: str) -> None:
        pass

class ConsoleNotifier:
    def __init__(self, ask = input, opener = reveal):
        self.ask = ask
        self.opener = opener

    def build_succeeded(self, location: str) -> None:
        print("Build Succeeded: the project was built successfully.")
        answer = self.ask("Open folder? [y/N] ")
        if answer.strip().lower() in ("y", "yes"):
            try:
                self.opener(location)
            except OSError as e:
                logger.warning(f"NOTIFY: couldn't open {location}: {e}")
