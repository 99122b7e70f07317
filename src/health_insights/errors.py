"""Error taxonomy for the insight engine."""


class InsightEngineError(Exception):
    """Base class for insight engine errors."""


class DataFetchError(InsightEngineError):
    """Raised when one or more domain reads fail while building the context.

    Fatal to the engine call: no insights are produced from a partial context.
    """

    def __init__(self, failures: dict[str, BaseException]) -> None:
        self.failures = failures
        domains = ", ".join(sorted(failures))
        super().__init__(f"Failed to fetch health data for: {domains}")

    @property
    def domains(self) -> list[str]:
        """Names of the domains whose read failed."""
        return sorted(self.failures)


class AnalyzerFailure(InsightEngineError):
    """A single analyzer raised during evaluation.

    Never escapes the engine; it is logged and the analyzer contributes nothing.
    """

    def __init__(self, analyzer: str, cause: BaseException) -> None:
        self.analyzer = analyzer
        self.cause = cause
        super().__init__(f"Analyzer '{analyzer}' failed: {cause}")


class PersistenceFailure(InsightEngineError):
    """Raised by an insight sink when saving fails."""
