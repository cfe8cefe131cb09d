"""
Concurrency Management Module
Bounds concurrent nesting requests and runs nesting jobs on a worker pool
with a completion timeout
"""

import logging
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import wraps
from typing import Any, Callable, Dict, Optional

from error_handler import NestingTimeoutError

logger = logging.getLogger(__name__)


class RequestLimiter:
    """
    Caps the number of nesting requests in flight.

    Admitted requests are tracked by id with their start time, so a release
    for an id that was never admitted leaves the count untouched.
    """

    def __init__(self, max_concurrent: int = 4):
        self.max_concurrent = max_concurrent
        self.rejected_requests = 0
        self.peak_requests = 0
        self._started: Dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def active_requests(self) -> int:
        return len(self._started)

    def acquire_request_slot(self, request_id: str) -> bool:
        with self._lock:
            if len(self._started) >= self.max_concurrent:
                self.rejected_requests += 1
                logger.warning(f"Nesting request {request_id} turned away, "
                               f"{len(self._started)} of {self.max_concurrent} slots busy")
                return False
            self._started[request_id] = time.perf_counter()
            self.peak_requests = max(self.peak_requests, len(self._started))
            logger.debug(f"Nesting request {request_id} admitted")
            return True

    def release_request_slot(self, request_id: str):
        with self._lock:
            started = self._started.pop(request_id, None)
        if started is not None:
            logger.info(f"Nesting request {request_id} finished after {time.perf_counter() - started:.2f}s")

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            active = len(self._started)
        return {
            'active_requests': active,
            'max_concurrent': self.max_concurrent,
            'rejected_requests': self.rejected_requests,
            'peak_requests': self.peak_requests,
        }


class RequestSlot:
    """A limiter slot held by one request; releasing it twice is harmless"""

    def __init__(self, limiter: RequestLimiter, request_id: str):
        self.limiter = limiter
        self.request_id = request_id

    def release(self):
        self.limiter.release_request_slot(self.request_id)


_held = threading.local()


def hand_over_request_slot() -> Optional[RequestSlot]:
    """Take the slot held by the current request thread, if any"""
    slot = getattr(_held, 'slot', None)
    _held.slot = None
    return slot


class NestingWorker:
    """
    Runs nesting jobs on a thread pool.

    Each job is independent and delivers exactly one value (or exception)
    through its Future. `run` waits for that value and converts an expired
    wait into NestingTimeoutError. A running thread cannot be interrupted, so
    a timed-out job finishes in the background; when `run` is called inside
    a limited request, the request slot stays taken until the job is done.
    """

    def __init__(self, max_workers: int = 4, timeout: float = 30.0):
        self.max_workers = max_workers
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix='nesting')

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        return self._executor.submit(fn, *args, **kwargs)

    def run(self, fn: Callable, *args, timeout: float = None, **kwargs):
        wait = self.timeout if timeout is None else timeout
        slot = hand_over_request_slot()
        try:
            future = self.submit(fn, *args, **kwargs)
        except RuntimeError:
            if slot is not None:
                slot.release()
            raise
        if slot is not None:
            future.add_done_callback(lambda _: slot.release())

        try:
            result = future.result(timeout=wait)
        except FutureTimeoutError:
            future.cancel()
            logger.error(f"Nesting job {getattr(fn, '__name__', fn)} exceeded {wait:g}s")
            raise NestingTimeoutError(f"Nesting did not finish within {wait:g} seconds") from None

        if slot is not None:
            slot.release()
        return result

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)


def limit_concurrent_requests(limiter):
    """
    Decorator that answers 503 while every nesting slot is busy.

    `limiter` is a RequestLimiter or a callable returning one, so per-app
    limiters can be looked up at request time. A NestingWorker.run call made
    by the wrapped function takes over the slot and releases it when its job
    completes, otherwise the slot is released when the function returns.
    """
    get_limiter = limiter if callable(limiter) else (lambda: limiter)

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            limiter = get_limiter()
            request_id = str(uuid.uuid4())

            if not limiter.acquire_request_slot(request_id):
                return {'success': False, 'error': 'Server busy, please try again later',
                        'error_type': 'ServerBusy'}, 503

            _held.slot = RequestSlot(limiter, request_id)
            try:
                return func(*args, **kwargs)
            finally:
                slot = hand_over_request_slot()
                if slot is not None:
                    slot.release()

        return wrapper
    return decorator
