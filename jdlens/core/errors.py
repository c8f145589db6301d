"""Exception types raised by the analysis pipeline."""


class JDLensError(Exception):
    """Base class for all pipeline errors."""


class DimensionMismatchError(JDLensError, ValueError):
    """Two embeddings of different dimensionality were compared.

    Means vectors from different embedding models ended up in the same
    store; never recovered from.
    """

    def __init__(self, left: int, right: int):
        super().__init__(f"Vectors must have the same length ({left} != {right})")
        self.left = left
        self.right = right


class JobDescriptionNotFound(JDLensError, LookupError):
    def __init__(self, jd_id: int):
        super().__init__(f"Job description {jd_id} not found")
        self.jd_id = jd_id


class AnalysisFailed(JDLensError):
    """Analysis of a JD was aborted and the JD is now FAILED."""

    def __init__(self, jd_id: int, cause: Exception):
        super().__init__(f"Analysis of job description {jd_id} failed: {cause}")
        self.jd_id = jd_id
        self.cause = cause


class LLMUnavailable(JDLensError, RuntimeError):
    """The language model client cannot be built (missing key or SDK)."""
