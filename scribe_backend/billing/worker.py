import queue
import threading
import time

from ..api.logger import get_logger

logger = get_logger("billing.worker")

_STOP = object()


# PUBLIC_INTERFACE
class WebhookWorker:
    """
    Processes verified webhook events off the request path.

    The webhook route hands events over with submit() and responds at once. A
    single background thread applies them in arrival order, each inside its own
    store session, retrying failed events before dropping them with an error log.
    """

    def __init__(self, session_factory, reconciler_factory, max_retries=3, retry_delay=1.0):
        self.session_factory = session_factory
        self.reconciler_factory = reconciler_factory
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._queue = queue.Queue()
        self._thread = None
        self._stop_requested = False

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop_requested = False
        self._thread = threading.Thread(target=self._run, name="webhook-worker", daemon=True)
        self._thread.start()
        logger.info("Webhook worker started")

    def stop(self, timeout=5.0):
        """Asks the thread to finish the queue and exit. Returns False if it is still running after timeout."""
        if self._thread is None:
            return True
        if not self._stop_requested:
            self._queue.put(_STOP)
            self._stop_requested = True
        self._thread.join(timeout)
        if self._thread.is_alive():
            # Still tracked so a later stop() can wait on it again
            logger.warning("Webhook worker did not stop within %.1fs; %d event(s) pending",
                           timeout, self._queue.qsize())
            return False
        self._thread = None
        self._stop_requested = False
        logger.info("Webhook worker stopped")
        return True

    def submit(self, event):
        self._queue.put(event)

    def join(self):
        """Blocks until every submitted event has been processed or dropped."""
        self._queue.join()

    def _run(self):
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                self._process(event)
            finally:
                self._queue.task_done()

    def _process(self, event):
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                self.process_once(event)
                return True
            except Exception:
                logger.exception(
                    "Webhook %s (%s) failed on attempt %d/%d",
                    event.get("type"), event.get("id"), attempt, attempts,
                )
                if attempt < attempts and self.retry_delay:
                    time.sleep(self.retry_delay)
        logger.error("Dropping webhook %s (%s) after %d attempts", event.get("type"), event.get("id"), attempts)
        return False

    def process_once(self, event):
        """Applies one event in a fresh session, committing on success."""
        db = self.session_factory()
        try:
            self.reconciler_factory(db).handle(event)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
