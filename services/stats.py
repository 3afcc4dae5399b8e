"""Client for the aggregation worker process."""

import threading
from concurrent.futures import Executor, Future, ProcessPoolExecutor, wait
from typing import Iterable, List, Optional
from events import STATS_READY
from logger import get_logger
from tools.stats import handle_message

logger = get_logger()


class StatsWorker:
    """Sends compute requests to an isolated worker and announces the results.

    Only copied dictionaries cross the process boundary. Each request carries
    an increasing requestId; a response is announced on stats-ready only when
    it answers the most recent request, so an older computation finishing
    late never overwrites a newer one.

    Responses are announced from poll() or wait(), on the thread that calls
    them, never on the executor's own threads. The dispatcher and the state
    cache therefore stay on their owner's thread.

    Args:
        dispatcher: Dispatcher used to announce stats-ready.
        executor: Executor to run requests on. Defaults to a single-process
            ProcessPoolExecutor created on first use.
    """

    def __init__(self, dispatcher, executor: Optional[Executor] = None):
        self.dispatcher = dispatcher
        self._executor = executor
        self._owns_executor = executor is None
        self._lock = threading.Lock()
        self._last_request_id = 0
        self._outstanding: List[Future] = []
        self.latest = None

    def request(self, transactions: Iterable) -> Future:
        """Submit a compute request for a transaction list.

        Args:
            transactions: Enriched transactions (objects with to_dict) or dictionaries.

        Returns:
            Future resolving to the raw response message.
        """
        message = {
            "type": "compute",
            "payload": {"transactions": [_as_dict(t) for t in transactions]},
        }
        with self._lock:
            self._last_request_id += 1
            message["requestId"] = self._last_request_id
            future = self._get_executor().submit(handle_message, message)
            self._outstanding.append(future)

        logger.debug(f"Submitted stats request {message['requestId']}")
        return future

    def poll(self) -> int:
        """Announce every response that has arrived since the last poll.

        Returns:
            Number of responses announced on stats-ready.
        """
        with self._lock:
            done = [f for f in self._outstanding if f.done()]
            self._outstanding = [f for f in self._outstanding if f not in done]

        return sum(1 for future in done if self._deliver(future))

    def wait(self, timeout: Optional[float] = None) -> Optional[dict]:
        """Block until the most recent request finishes, then poll.

        Args:
            timeout: Seconds to wait; None waits indefinitely.

        Returns:
            The latest stats payload, or None if nothing was computed yet.

        Raises:
            TimeoutError: If the most recent request is still running.
        """
        with self._lock:
            pending = self._outstanding[-1] if self._outstanding else None

        if pending is not None:
            _, not_done = wait([pending], timeout=timeout)
            if not_done:
                raise TimeoutError(f"Stats worker did not answer within {timeout}s")

        self.poll()
        return self.latest

    def close(self) -> None:
        """Shut down a worker process owned by this client."""
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._outstanding = []

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ProcessPoolExecutor(max_workers=1)
        return self._executor

    def _deliver(self, future: Future) -> bool:
        if future.cancelled():
            return False
        error = future.exception()
        if error is not None:
            logger.error(f"Stats worker failed: {error}")
            return False

        response = future.result()
        if not response or response.get("type") != "stats":
            return False

        if response.get("requestId") != self._last_request_id:
            logger.debug(f"Dropping stale stats response {response.get('requestId')}")
            return False

        self.latest = response["payload"]
        self.dispatcher.emit(STATS_READY, response["payload"])
        return True


def _as_dict(transaction) -> dict:
    if isinstance(transaction, dict):
        return dict(transaction)
    return transaction.to_dict()
