import asyncio, itertools, time, aiohttp
from typing import Awaitable, Callable
from .metrics import AttemptOutcome
from .policy import is_dpi_signature
from .settings import CheckConfig, DEFAULT_CHECK_CONFIG


# identity encoding keeps body bytes equal to bytes on the wire
DEFAULT_HTTP_HEADERS = {
    "Accept": "*/*",
    "Accept-Encoding": "identity",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}

READ_CHUNK_BYTES = 4096


def add_cache_buster(url: str, attempt: int, now_ms: int, seq: int) -> str:
    """
    Append `_cb=<now>-<attempt>-<seq>` so no two requests share a cache
    entry, even for duplicate URLs probed in the same millisecond.
    """
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}_cb={now_ms}-{attempt}-{seq}"


def _perf_ms() -> float:
    return time.perf_counter() * 1000


def _wall_ms() -> int:
    return int(time.time() * 1000)


class TransferCounter:
    """
    Body bytes streamed by one attempt.

    Updated while the response is being read, so a stream severed
    mid-body keeps its partial count. Stays at 0 when the connection
    fails before any body byte arrives.
    """

    def __init__(self):
        self.size = 0

    def add(self, n: int) -> int:
        self.size += n
        return self.size

    @property
    def observed(self) -> int | None:
        # 0 bytes is reported the same as "unknown"
        return self.size or None


class HttpProber:
    """
    Single-attempt HTTP probe built on aiohttp.

    - One request per call, with a cache-busting query parameter
    - Hard timeout (config.request_timeout_ms); a timeout is inconclusive
    - Any other client failure is scored for a DPI signature
    - Clock, settle wait and transfer lookup are injectable for tests

    Build the session with `auto_decompress=False` so the byte count is
    not inflated by decompression if a server ignores Accept-Encoding.
    """
    name = "http"

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: CheckConfig | None = None,
        clock: Callable[[], float] = _perf_ms,
        wall_clock: Callable[[], int] = _wall_ms,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        transfer_lookup: Callable[[str], int | None] | None = None,
    ):
        self.session = session
        self.config = config or DEFAULT_CHECK_CONFIG
        self.clock = clock
        self.wall_clock = wall_clock
        self.sleep = sleep
        self.transfer_lookup = transfer_lookup
        self._seq = itertools.count(1)

    async def _fetch(self, url: str, counter: TransferCounter) -> int:
        headers = {**DEFAULT_HTTP_HEADERS, "User-Agent": self.config.user_agent}
        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout_ms / 1000)

        async with self.session.get(
            url, headers=headers, timeout=timeout, allow_redirects=True
        ) as resp:
            async for chunk in resp.content.iter_chunked(READ_CHUNK_BYTES):
                if counter.add(len(chunk)) >= self.config.read_limit_bytes:
                    break
            return resp.status

    async def _settled_transfer_size(self, url: str, counter: TransferCounter) -> int | None:
        # An injected lookup may only see its data after the request settles
        await self.sleep(self.config.settle_delay_ms / 1000)
        if self.transfer_lookup is not None:
            return self.transfer_lookup(url)
        return counter.observed

    async def probe(self, url: str, attempt: int) -> AttemptOutcome:
        """
        Run one attempt against `url` (already validated as https).

        Never raises for network problems: timeouts and transport
        failures come back as unsuccessful AttemptOutcome values.
        """
        cfg = self.config
        bust_url = add_cache_buster(url, attempt, self.wall_clock(), next(self._seq))
        counter = TransferCounter()
        t0 = self.clock()

        try:
            status = await asyncio.wait_for(self._fetch(bust_url, counter), timeout=cfg.request_timeout_ms / 1000)
        except asyncio.TimeoutError:
            timing = self.clock() - t0
            transfer_size = await self._settled_transfer_size(bust_url, counter)
            return AttemptOutcome(
                success=False, timing_ms=timing, transfer_size=transfer_size,
                is_dpi_signature=False, detail=f"timeout after {cfg.request_timeout_ms}ms",
                timed_out=True,
            )
        except Exception as e:
            timing = self.clock() - t0
            transfer_size = await self._settled_transfer_size(bust_url, counter)
            signature = is_dpi_signature(timing, transfer_size, cfg)

            if signature:
                size_info = f" / {transfer_size} bytes" if transfer_size else ""
                detail = f"connection reset at {timing:.0f}ms{size_info} - DPI signature"
            else:
                detail = f"network error: {str(e) or type(e).__name__} at {timing:.0f}ms"

            return AttemptOutcome(
                success=False, timing_ms=timing, transfer_size=transfer_size,
                is_dpi_signature=signature, detail=detail,
            )

        timing = self.clock() - t0
        transfer_size = await self._settled_transfer_size(bust_url, counter)
        return AttemptOutcome(
            success=True, timing_ms=timing, transfer_size=transfer_size,
            is_dpi_signature=False, detail=f"status {status} in {timing:.0f}ms",
        )
