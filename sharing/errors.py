class ShareError(Exception):
    """Base class for every failure the share service reports to its callers."""


class NotFound(ShareError):
    def __init__(self, code: str):
        super().__init__(f"No share found for code {code!r}")
        self.code = code


class Expired(ShareError):
    def __init__(self, code: str):
        super().__init__(f"Share {code!r} has expired")
        self.code = code


class QuotaExhausted(ShareError):
    def __init__(self, code: str):
        super().__init__(f"Download limit reached for share {code!r}")
        self.code = code


class PasswordRequired(ShareError):
    def __init__(self, code: str):
        super().__init__(f"Share {code!r} is password protected")
        self.code = code


class InvalidPassword(ShareError):
    def __init__(self, code: str):
        super().__init__(f"Invalid password for share {code!r}")
        self.code = code


class DuplicateCode(ShareError):
    def __init__(self, code: str):
        super().__init__(f"Share code {code!r} is already in use")
        self.code = code


class CodeSpaceExhausted(ShareError):
    def __init__(self, attempts: int):
        super().__init__(f"Could not find a free share code after {attempts} attempts")
        self.attempts = attempts


class InvalidShareCode(ShareError):
    pass


class InvalidShareSettings(ShareError):
    pass


class CorruptPayload(ShareError):
    pass


class EncodingFailure(ShareError):
    pass


class FileTooLarge(ShareError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"File is {size} bytes, the limit is {limit} bytes")
        self.size = size
        self.limit = limit


class StoreUnavailable(ShareError):
    pass
