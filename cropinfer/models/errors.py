class PipelineError(Exception):
    """Base class for every failure the pipeline knows how to report."""

    # Silent errors are logged but never shown to the user.
    silent = False


class InvalidFileType(PipelineError):
    pass


class DecodeFailure(PipelineError):
    pass


class DegenerateSelection(PipelineError):
    silent = True


class EmptyCrop(PipelineError):
    silent = True


class ShapeMismatch(PipelineError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"Model output has {actual} values, expected {expected}")
        self.expected = expected
        self.actual = actual


class ModelFailure(PipelineError):
    """Wraps whatever the external model raised; the message is passed through as-is."""

    def __init__(self, cause: BaseException):
        super().__init__(str(cause))
        self.cause = cause
