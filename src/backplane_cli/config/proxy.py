"""
Proxy health selection

Picks the first proxy-url candidate, in configured order, that can reach
the backplane health endpoint. Falls back to the first candidate when
none is healthy so the selection never flips to "no proxy".
"""

import queue
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import requests

from backplane_cli.exceptions import ProbeFailure
from backplane_cli.logging_config import get_logger

logger = get_logger("config.proxy")

HEALTH_CHECK_PATH = "/healthz"
PROBE_TIMEOUT = 5.0


class ProbeTransport(ABC):
    """HTTP capability used to probe the health endpoint through a proxy."""

    @abstractmethod
    def get(self, url: str, proxy_url: str, timeout: float) -> int:
        """GET url through proxy_url and return the response status code.

        Raises:
            requests.RequestException: On transport errors and timeouts
        """


class RequestsProbeTransport(ProbeTransport):
    """Probe transport built on requests.

    Every probe gets its own session so proxy bindings are never shared
    between candidates, including when probing in parallel.

    The timeout bounds the connect and each socket read, not the whole
    attempt; pass a deadline to select_proxy to cap total probing time.
    """

    def __init__(self, session_factory: Callable[[], requests.Session] = requests.Session):
        self.session_factory = session_factory

    def get(self, url: str, proxy_url: str, timeout: float) -> int:
        session = self.session_factory()
        try:
            # proxy comes from the candidate, never from HTTPS_PROXY
            session.trust_env = False
            response = session.get(
                url,
                proxies={"http": proxy_url, "https": proxy_url},
                timeout=timeout,
            )
            response.close()
            return response.status_code
        finally:
            session.close()


def health_check_url(base_url: str) -> str:
    """Get the health endpoint URL for a backplane API URL."""
    return base_url.rstrip("/") + HEALTH_CHECK_PATH


def is_valid_proxy_url(candidate: str) -> bool:
    """Check that a candidate is an absolute URL usable as a proxy.

    Args:
        candidate: Proxy URL from the configuration

    Returns:
        True if the candidate has a scheme and host and no whitespace or
        control characters
    """
    if not candidate or any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7f for ch in candidate):
        return False
    try:
        parts = urlsplit(candidate)
        # Raises ValueError on a malformed port
        parts.port
    except ValueError:
        return False
    return bool(parts.scheme and parts.hostname)


def probe_proxy(
    transport: ProbeTransport,
    proxy_url: str,
    target: str,
    timeout: float = PROBE_TIMEOUT,
) -> None:
    """Probe the health endpoint through one proxy.

    Args:
        transport: HTTP capability
        proxy_url: Candidate proxy
        target: Health endpoint URL
        timeout: Per-attempt timeout in seconds

    Raises:
        ProbeFailure: If the probe errors, times out or is not HTTP 200
    """
    try:
        status_code = transport.get(target, proxy_url, timeout)
    except requests.Timeout as e:
        raise ProbeFailure(
            f"proxy: {proxy_url} timed out after {timeout}s",
            proxy_url=proxy_url,
            details=str(e),
        ) from e
    except (requests.RequestException, ValueError) as e:
        raise ProbeFailure(
            f"proxy: {proxy_url} returned an error: {e}",
            proxy_url=proxy_url,
            details=str(e),
        ) from e

    if status_code != 200:
        raise ProbeFailure(
            f"proxy: {proxy_url} did not pass healthcheck, expected response code 200, "
            f"got {status_code}, discarding",
            proxy_url=proxy_url,
            status_code=status_code,
        )


def _remaining(deadline_at: Optional[float]) -> Optional[float]:
    if deadline_at is None:
        return None
    return deadline_at - time.monotonic()


def _select_sequential(
    candidates: List[str],
    target: str,
    transport: ProbeTransport,
    timeout: float,
    deadline_at: Optional[float],
) -> Optional[str]:
    for candidate in candidates:
        remaining = _remaining(deadline_at)
        if remaining is not None and remaining <= 0:
            logger.info("proxy selection deadline exceeded, not probing remaining candidates")
            return None
        attempt_timeout = timeout if remaining is None else min(timeout, remaining)

        try:
            probe_proxy(transport, candidate, target, attempt_timeout)
        except ProbeFailure as e:
            logger.info("%s", e.message)
            continue
        return candidate

    return None


def _probe_worker(
    jobs: "queue.Queue[Tuple[str, Future]]",
    target: str,
    transport: ProbeTransport,
    timeout: float,
    deadline_at: Optional[float],
) -> None:
    while True:
        try:
            candidate, future = jobs.get_nowait()
        except queue.Empty:
            return
        if not future.set_running_or_notify_cancel():
            continue

        remaining = _remaining(deadline_at)
        if remaining is not None and remaining <= 0:
            future.set_exception(ProbeFailure(
                f"proxy: {candidate} was not probed before the selection deadline",
                proxy_url=candidate,
            ))
            continue
        attempt_timeout = timeout if remaining is None else min(timeout, remaining)

        try:
            probe_proxy(transport, candidate, target, attempt_timeout)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(candidate)


def _select_parallel(
    candidates: List[str],
    target: str,
    transport: ProbeTransport,
    timeout: float,
    deadline_at: Optional[float],
    max_workers: int,
) -> Optional[str]:
    jobs: "queue.Queue[Tuple[str, Future]]" = queue.Queue()
    futures: List[Tuple[str, Future]] = []
    for candidate in candidates:
        future: Future = Future()
        futures.append((candidate, future))
        jobs.put((candidate, future))

    # Daemon workers: a probe still running at the deadline must not keep
    # the process alive after selection returns
    for _ in range(min(max_workers, len(candidates))):
        threading.Thread(
            target=_probe_worker,
            args=(jobs, target, transport, timeout, deadline_at),
            name="proxy-probe",
            daemon=True,
        ).start()

    try:
        # Results are consumed in list order so the earliest healthy
        # candidate wins regardless of which probe finishes first
        for candidate, future in futures:
            remaining = _remaining(deadline_at)
            if remaining is not None:
                remaining = max(remaining, 0)
            try:
                future.result(timeout=remaining)
            except ProbeFailure as e:
                logger.info("%s", e.message)
                continue
            except FutureTimeoutError:
                logger.info("proxy: %s did not answer before the selection deadline", candidate)
                continue
            return candidate
        return None
    finally:
        for _, future in futures:
            future.cancel()


def select_proxy(
    candidates: Sequence[str],
    base_url: str,
    transport: Optional[ProbeTransport] = None,
    timeout: float = PROBE_TIMEOUT,
    max_workers: int = 1,
    deadline: Optional[float] = None,
) -> Optional[str]:
    """Select the first working proxy from an ordered candidate list.

    Args:
        candidates: Proxy URLs in configured order
        base_url: Backplane API URL; '/healthz' is appended to it
        transport: HTTP capability (default: RequestsProbeTransport)
        timeout: Per-probe connect and read timeout in seconds
        max_workers: Probe this many candidates concurrently
        deadline: Upper bound in seconds for all probing; per-probe
            timeouts are clamped to the time left

    Returns:
        The first healthy candidate, else the first candidate, else None
        for an empty list
    """
    candidates = list(candidates)
    if not candidates:
        return None

    transport = transport or RequestsProbeTransport()
    target = health_check_url(base_url)
    deadline_at = time.monotonic() + deadline if deadline is not None else None

    valid = []
    for candidate in candidates:
        if is_valid_proxy_url(candidate):
            valid.append(candidate)
        else:
            logger.debug("proxy-url: %r could not be parsed.", candidate)

    selected = None
    if valid:
        if max_workers > 1 and len(valid) > 1:
            selected = _select_parallel(valid, target, transport, timeout, deadline_at, max_workers)
        else:
            selected = _select_sequential(valid, target, transport, timeout, deadline_at)

    if selected is not None:
        logger.debug("proxy: %s passed healthcheck", selected)
        return selected

    logger.info("falling back to first proxy-url after all proxies failed health checks: %s", candidates[0])
    return candidates[0]
