class TubeFetchError(Exception):
    """Base class for failures inside the download pipeline."""


class ExtractionError(TubeFetchError):
    """yt-dlp could not read the video page or player response."""


class FormatNotFound(TubeFetchError):
    pass


class FetchError(TubeFetchError):
    """A media stream could not be written to disk."""


class MergeError(TubeFetchError):
    """ffmpeg failed or is not installed."""
