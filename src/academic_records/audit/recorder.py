"""AuditRecorder — fire-and-forget enrichment and persistence of audit events.

``record()`` snapshots the request metadata, places the event on a bounded
queue and returns immediately. A small pool of daemon worker threads drains
the queue: each job resolves the client IP, geolocates it, parses the
user-agent, renders the description and translation, and inserts a single
ActivityRecord.

Delivery is best effort. A full queue drops the event with a warning rather
than blocking the request; any failure while enriching or inserting is logged
and the event is lost. Nothing raised here ever reaches the caller.
"""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass

from academic_records.audit.actions import describe_actor_action, translate_action
from academic_records.audit.record import UNKNOWN_ROLE, ActivityRecord, AuditEvent
from academic_records.audit.store import ActivityStore
from academic_records.context import RequestContext
from academic_records.enrichment.client_ip import resolve_client_ip
from academic_records.enrichment.geo import GeoLocator
from academic_records.enrichment.user_agent import parse_user_agent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Job:
    event: AuditEvent
    context: RequestContext | None


_STOP = object()


def _role_name(role: object) -> str:
    name = getattr(role, "value", role)
    return str(name).strip().lower() if name else UNKNOWN_ROLE


class AuditRecorder:
    """Background audit writer.

    Parameters
    ----------
    store:
        Destination activity store.
    geo:
        Geolocator used for enrichment. Defaults to a disabled locator.
    workers:
        Number of worker threads.
    queue_size:
        Maximum number of pending events. Further events are dropped.
    """

    def __init__(
        self,
        store: ActivityStore,
        geo: GeoLocator | None = None,
        workers: int = 2,
        queue_size: int = 1000,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._store = store
        self._geo = geo or GeoLocator()
        self._queue: queue.Queue[object] = queue.Queue(maxsize=queue_size)
        self._dropped = 0
        self._dropped_lock = threading.Lock()
        self._closed = False
        self._threads = [
            threading.Thread(target=self._worker, name=f"audit-worker-{i}", daemon=True)
            for i in range(workers)
        ]
        for thread in self._threads:
            thread.start()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(self, event: AuditEvent, context: RequestContext | None = None) -> None:
        """Dispatch *event* for background persistence and return immediately."""
        try:
            if self._closed:
                logger.warning("audit recorder closed; dropping %s", event.action_code)
                return
            snapshot = (
                RequestContext(headers=dict(context.headers), peer_address=context.peer_address)
                if context is not None
                else None
            )
            self._queue.put_nowait(_Job(event=event, context=snapshot))
        except queue.Full:
            with self._dropped_lock:
                self._dropped += 1
            logger.warning("audit queue full; dropping %s event", event.action_code)
        except Exception:
            logger.exception("failed to dispatch audit event")

    def build_record(self, event: AuditEvent, context: RequestContext | None) -> ActivityRecord:
        """Enrich *event* with request metadata into an ActivityRecord."""
        ip = resolve_client_ip(context)
        geo = self._geo.lookup(ip)
        agent = parse_user_agent(context.header("user-agent") if context is not None else None)

        return ActivityRecord(
            action_code=event.action_code,
            translated_action=translate_action(event.action_code),
            human_description=describe_actor_action(
                event.actor_role, event.actor_first_name, event.message
            ),
            entity_kind=event.entity,
            actor_id=event.actor_id,
            actor_role=_role_name(event.actor_role),
            client_ip=ip,
            geo=geo,
            browser=agent.browser,
            os=agent.os,
            device_kind=agent.device_kind,
            created_at=event.occurred_at,
        )

    def flush(self) -> None:
        """Block until every queued event has been processed."""
        self._queue.join()

    def close(self, timeout: float | None = 5.0) -> None:
        """Drain pending events and stop the workers."""
        if self._closed:
            return
        self._closed = True
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join(timeout)

    @property
    def dropped(self) -> int:
        """Number of events dropped because the queue was full."""
        with self._dropped_lock:
            return self._dropped

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _worker(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is _STOP:
                    return
                self._store.insert(self.build_record(job.event, job.context))  # type: ignore[attr-defined]
            except Exception:
                logger.exception("audit record could not be persisted; event lost")
            finally:
                self._queue.task_done()
