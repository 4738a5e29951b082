class ArchiveError(Exception):
    """Base class for archival failures."""


class CrawlPendingError(ArchiveError):
    """archive.org has not published a snapshot link yet."""


class CaptchaError(ArchiveError):
    """archive.today answered the submission with a CAPTCHA."""


class SnapshotInProgressError(ArchiveError):
    """archive.today is still working on the snapshot."""


class ShortUrlError(ArchiveError):
    """v.gd refused to create the short URL."""
