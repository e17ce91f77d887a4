from typing import Any, Callable

from .core import ProbeResult

__all__ = ["SyntheticProbe"]
__test__ = False


class SyntheticProbe:
    """Deterministic probe driven by a cost model."""

    def __init__(
        self,
        model: Callable[[Any], float],
        fail_on: Callable[[Any], bool] | None = None,
    ):
        """Initialize probe.

        Args:
            model: Returns simulated elapsed seconds for a parameter set.
            fail_on: Optional predicate marking parameter sets as failing.
        """

        self.model = model
        self.fail_on = fail_on
        self.calls: list[Any] = []

    def run(self, params: Any) -> ProbeResult:
        """Record ``params`` and return the modelled elapsed time."""

        self.calls.append(params)
        if self.fail_on is not None and self.fail_on(params):
            return ProbeResult(elapsed=0.0, ok=False, error="synthetic failure")
        return ProbeResult(elapsed=self.model(params))
