"""Classification and console rendering of probe runs.

Everything here is a pure function of the recorded arrival events; printing
is left to the caller.
"""

from typing import Iterable, List, Optional, Sequence

from streamprobe.models.probe import ArrivalEvent, Classification, ProbeResult
from streamprobe.models.stream import CompressionMode

STREAMING_THRESHOLD = 5
BANNER_WIDTH = 60


def classify(
    mode: CompressionMode, chunk_count: int, threshold: int = STREAMING_THRESHOLD
) -> Optional[Classification]:
    """Coarse heuristic: one arrival means buffered, ``threshold`` or more
    means streaming. Counts in between stay unlabelled."""
    if chunk_count == 1 and mode is not CompressionMode.NONE:
        return Classification.BUFFERED
    if chunk_count >= threshold:
        return Classification.STREAMING
    return None


def summarize(
    mode: CompressionMode,
    events: Sequence[ArrivalEvent],
    threshold: int = STREAMING_THRESHOLD,
    status_code: Optional[int] = None,
) -> ProbeResult:
    chunks = [e for e in events if not e.final]
    final = next((e for e in reversed(events) if e.final), None)
    if final is not None:
        total_bytes = final.byte_length
        chunk_count = final.sequence_index
        elapsed = final.elapsed_ms
    else:
        total_bytes = sum(e.byte_length for e in chunks)
        chunk_count = len(chunks)
        elapsed = chunks[-1].elapsed_ms if chunks else 0

    return ProbeResult(
        mode=mode,
        total_bytes=total_bytes,
        chunk_count=chunk_count,
        total_elapsed_ms=elapsed,
        classification=classify(mode, chunk_count, threshold),
        status_code=status_code,
    )


def failed_result(
    mode: CompressionMode, error: str, status_code: Optional[int] = None
) -> ProbeResult:
    return ProbeResult(mode=mode, status_code=status_code, error=error)


def exit_code(results: Iterable[ProbeResult]) -> int:
    """2 when every probe failed, which points at a shared setup problem."""
    results = list(results)
    if results and not any(r.ok for r in results):
        return 2
    return 0


# ------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------
def render_banner(mode: CompressionMode, decoded: bool = False) -> List[str]:
    what = "decoded bytes" if decoded else "raw compressed bytes"
    rule = "=" * BANNER_WIDTH
    return ["", rule, f"Testing: {mode.value} ({what} arrival times)", rule]


def render_event(event: ArrivalEvent) -> str:
    return f"  [{event.elapsed_ms:>5}ms] Chunk {event.sequence_index}: {event.byte_length} bytes"


def render_result(result: ProbeResult) -> List[str]:
    if not result.ok:
        return [f"  Error: {result.error}"]

    lines = [
        "",
        f"  Total: {result.total_bytes} bytes in {result.chunk_count} chunks "
        f"over {result.total_elapsed_ms}ms",
    ]
    if result.classification is Classification.BUFFERED:
        lines.append("  ⚠️  BUFFERED: All data arrived in a single chunk")
    elif result.classification is Classification.STREAMING:
        lines.append("  ✓  STREAMING: Data arrived in multiple chunks")
    return lines


def render_summary(results: Sequence[ProbeResult]) -> List[str]:
    header = f"{'mode':<8} {'status':>6} {'bytes':>9} {'chunks':>6} {'elapsed':>9}  result"
    lines = ["", "Summary", header, "-" * len(header)]
    for r in results:
        status = str(r.status_code) if r.status_code is not None else "-"
        if r.ok:
            verdict = r.classification.value if r.classification else "unclassified"
            lines.append(
                f"{r.mode.value:<8} {status:>6} {r.total_bytes:>9} {r.chunk_count:>6} "
                f"{r.total_elapsed_ms:>7}ms  {verdict}"
            )
        else:
            lines.append(f"{r.mode.value:<8} {status:>6} {'-':>9} {'-':>6} {'-':>9}  failed: {r.error}")
    return lines
