from dataclasses import dataclass, field
from typing import Callable, Iterable, List, TypeVar

from shopadmin.utils.log import get_logger

log = get_logger("shopadmin.batch", "BATCH")

T = TypeVar("T")


@dataclass
class BatchResult:
    success_count: int = 0
    fail_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success_count + self.fail_count

    def __add__(self, other: "BatchResult") -> "BatchResult":
        return BatchResult(
            success_count=self.success_count + other.success_count,
            fail_count=self.fail_count + other.fail_count,
            errors=self.errors + other.errors,
        )

    def to_dict(self):
        return {
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "errors": list(self.errors),
        }


def run_batch(items: Iterable[T], operation: Callable[[T], object], label: str = "batch") -> BatchResult:
    """
    Run `operation` once per item, one at a time and in order.

    A failing item is counted and its message kept; the remaining items still
    run. Nothing raised by `operation` escapes this function.
    """
    result = BatchResult()
    for n, item in enumerate(items):
        try:
            operation(item)
            result.success_count += 1
        except Exception as e:
            message = str(e) or type(e).__name__
            log.warning(f"{label}: item {n} failed: {message}")
            result.fail_count += 1
            result.errors.append(message)
    if result.total:
        log.debug(f"{label}: {result.success_count} ok, {result.fail_count} failed")
    return result
