import time
from typing import Callable, Dict, Iterable, List, Optional

import requests
import urllib3

from streamprobe.models.probe import ArrivalEvent, ProbeResult
from streamprobe.models.stream import CompressionMode
from streamprobe.services.report_service import STREAMING_THRESHOLD, failed_result, summarize
from streamprobe.utils.exceptions import ProbeHTTPError, StreamProbeError, TransportError
from streamprobe.utils.logger import get_logger

logger = get_logger(__name__)

EventCallback = Callable[[CompressionMode, ArrivalEvent], None]

ERROR_DETAIL_MAX_CHARS = 200


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _error_detail(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()[:ERROR_DETAIL_MAX_CHARS]
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return str(data)[:ERROR_DETAIL_MAX_CHARS]


class ProbeService:
    """Times the arrival of every body read from a streaming endpoint"""

    def __init__(
        self,
        base_url: str,
        path: str = "/",
        timeout: float = 30.0,
        decode: bool = False,
        threshold: int = STREAMING_THRESHOLD,
        params: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self._url = base_url.rstrip("/") + "/" + path.lstrip("/")
        self._timeout = timeout
        self._decode = decode
        self._threshold = threshold
        self._params = dict(params or {})
        self._session = session or requests.Session()
        self._last_status: Optional[int] = None

    @property
    def decode(self) -> bool:
        return self._decode

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(
        self, mode: CompressionMode, on_event: Optional[EventCallback] = None
    ) -> List[ArrivalEvent]:
        """Probe one mode; the returned events end with a ``final`` totals event.

        Each HTTP chunk is handed over as soon as the transport has it, so
        one event is one delivery. Raises ``TransportError`` or
        ``ProbeHTTPError``.
        """
        events: List[ArrivalEvent] = []
        total_bytes = 0
        start = time.monotonic()

        try:
            response = self._session.get(
                self._url,
                params={"format": mode.value, **self._params},
                headers={"Accept-Encoding": mode.content_encoding or "identity"},
                stream=True,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"{mode.value}: {e}") from e

        self._last_status = response.status_code
        with response:
            if not response.ok:
                raise ProbeHTTPError(response.status_code, _error_detail(response))
            if response.raw is None:
                raise ProbeHTTPError(response.status_code, "response has no body")

            try:
                for data in response.raw.stream(None, decode_content=self._decode):
                    if not data:
                        continue
                    total_bytes += len(data)
                    event = ArrivalEvent(
                        elapsed_ms=_elapsed_ms(start),
                        byte_length=len(data),
                        sequence_index=len(events) + 1,
                    )
                    events.append(event)
                    logger.debug(
                        f"{mode.value}: chunk {event.sequence_index} "
                        f"{event.byte_length} bytes at {event.elapsed_ms}ms"
                    )
                    if on_event is not None:
                        on_event(mode, event)
            except (urllib3.exceptions.HTTPError, requests.RequestException, OSError) as e:
                raise TransportError(
                    f"{mode.value}: stream aborted after {len(events)} chunks: {e}"
                ) from e

        events.append(
            ArrivalEvent(
                elapsed_ms=_elapsed_ms(start),
                byte_length=total_bytes,
                sequence_index=len(events),
                final=True,
            )
        )
        return events

    def probe(
        self, mode: CompressionMode, on_event: Optional[EventCallback] = None
    ) -> ProbeResult:
        """Run and summarize one mode; failures become a failed result."""
        try:
            events = self.run(mode, on_event=on_event)
        except ProbeHTTPError as e:
            logger.warning(f"Probe {mode.value} rejected: {e.message}")
            return failed_result(mode, e.message, status_code=e.status_code)
        except StreamProbeError as e:
            logger.error(f"Probe {mode.value} failed: {e.message}")
            return failed_result(mode, e.message)

        result = summarize(mode, events, threshold=self._threshold, status_code=self._last_status)
        logger.info(
            f"Probe {mode.value}: {result.total_bytes} bytes in {result.chunk_count} chunks "
            f"over {result.total_elapsed_ms}ms"
        )
        return result

    def run_all(
        self,
        modes: Iterable[CompressionMode],
        on_event: Optional[EventCallback] = None,
        on_start: Optional[Callable[[CompressionMode], None]] = None,
        on_result: Optional[Callable[[ProbeResult], None]] = None,
    ) -> List[ProbeResult]:
        """Probe each mode in turn; overlapping runs would mix the timelines."""
        results = []
        for mode in modes:
            if on_start is not None:
                on_start(mode)
            result = self.probe(mode, on_event=on_event)
            if on_result is not None:
                on_result(result)
            results.append(result)
        return results

    def close(self) -> None:
        self._session.close()
