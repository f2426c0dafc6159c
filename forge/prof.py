
import logging
import time

from typing import List

logger = logging.getLogger(__name__)

class ProfBlock:
    children = None
    start = None
    end = None
    label = None

    def __init__(self, label: str):
        self.label = label
        self.children = []

    @property
    def elapsed(self) -> float:
        if self.start is None:
            return 0.0
        end = time.perf_counter() if self.end is None else self.end
        return end - self.start

    def lines(self, indent: int = 0, suppress: bool = False) -> List[str]:
        result = []
        if not suppress:
            result.append(" " * indent + f"{self.label}: {self.elapsed:0.2f}")

        for child in self.children:
            result += child.lines(indent if suppress else indent + 2)

        return result

class Profiler:
    """Timing tree for a single run. Contexts nest in the order they're entered."""

    def __init__(self, label: str):
        self.root = ProfBlock(label)
        self.root.start = time.perf_counter()
        self.current = self.root

    def context(self, label: str) -> "Context":
        return Context(self, label)

    def finish(self) -> ProfBlock:
        self.root.end = time.perf_counter()

        logger.info(f"========= Prof dump ({self.root.label}, {self.root.elapsed:0.2f} seconds)")
        for line in self.root.lines(suppress = True):
            logger.info(line)

        return self.root

class Context:
    def __init__(self, profiler: Profiler, label: str):
        self.profiler = profiler
        self.prof = ProfBlock(label)

        self.parent = None

    def __enter__(self) -> ProfBlock:
        # add our new context to the parent
        self.parent = self.profiler.current
        self.parent.children += [self.prof]
        self.profiler.current = self.prof

        self.prof.start = time.perf_counter()
        return self.prof

    def __exit__(self, exception_type, exception_value, exception_traceback):
        self.prof.end = time.perf_counter()
        self.profiler.current = self.parent

        logger.info(f"Finished {self.prof.label}, {self.prof.elapsed:0.2f} seconds")
