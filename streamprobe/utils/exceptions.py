from typing import Optional


class StreamProbeError(Exception):
    """Base error for the harness"""

    def __init__(self, message: str = "Stream probe error", status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class SetupError(StreamProbeError):
    """Stream source could not be prepared before the response started"""

    def __init__(self, message: str = "Stream setup failed"):
        super().__init__(message, status_code=500)


class UnsupportedEncodingError(StreamProbeError):
    """Requested codec is not available in this runtime"""

    def __init__(self, encoding: str):
        self.encoding = encoding
        super().__init__(f"Unsupported encoding: {encoding}", status_code=501)


class TransportError(StreamProbeError):
    """Connection dropped or failed while probing"""

    def __init__(self, message: str = "Transport error"):
        super().__init__(message, status_code=502)


class ProbeHTTPError(StreamProbeError):
    """Server answered the probe with a failure status or no body"""

    def __init__(self, status_code: int, detail: Optional[str] = None):
        message = f"HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, status_code=status_code)
