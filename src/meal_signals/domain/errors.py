"""Error taxonomy for capture, recognition and recovery."""

NO_IMAGE_MESSAGE = "No image available for analysis"


class MealSignalsError(Exception):
    """Base class for errors raised by the capture pipeline."""

    kind = "error"


class ImageUploadError(MealSignalsError):
    """Image bytes could not be written to object storage."""

    kind = "upload-failure"


class ImageFetchError(MealSignalsError):
    """A stored image could not be read back for re-analysis."""

    kind = "image-fetch"


class RecognitionError(MealSignalsError):
    """Food recognition did not produce a usable result."""

    kind = "recognition"


class RecognitionNetworkError(RecognitionError):
    """Transient connectivity or upstream service failure."""

    kind = "recognition-network"


class RecognitionTimeoutError(RecognitionError):
    """The recognizer did not answer within its own timeout."""

    kind = "recognition-timeout"


class RecognitionMalformedError(RecognitionError):
    """The recognizer answered with data that failed shape validation."""

    kind = "recognition-malformed"
