"""Ejecución desacoplada de efectos secundarios (alarmas, push).

El request termina en cuanto la lectura es durable; lo que viene después
corre en un pool de threads y nadie espera su resultado. Cada tarea va
envuelta en su propio límite de errores: una excepción se loguea con el
contexto (equipo, métrica) y no vuelve nunca al llamador.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Optional, Set

from ..metrics.ingestion_metrics import SIDE_EFFECT_FAILURES

logger = logging.getLogger(__name__)


class DetachedTaskRunner:
    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="ingest-side-effect",
        )
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False
        self.failures = 0

    def submit(
        self,
        name: str,
        fn: Callable[..., Any],
        *args: Any,
        context: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> bool:
        """Lanza `fn` sin esperar. Devuelve False si el runner ya está cerrado."""
        if self._closed:
            logger.warning("[SIDE_EFFECT] Runner closed, dropping task=%s context=%s", name, context or {})
            return False

        try:
            future = self._executor.submit(self._guarded, name, fn, args, kwargs, context or {})
        except RuntimeError:
            # Carrera con shutdown().
            logger.warning("[SIDE_EFFECT] Executor shut down, dropping task=%s", name)
            return False

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Espera a que terminen las tareas en vuelo (tests / apagado ordenado)."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait_for_pending, cancel_futures=not wait_for_pending)
        logger.info("[SIDE_EFFECT] Runner stopped failures=%d", self.failures)

    def _guarded(
        self,
        name: str,
        fn: Callable[..., Any],
        args: tuple,
        kwargs: Dict[str, Any],
        context: Dict[str, Any],
    ) -> None:
        try:
            fn(*args, **kwargs)
        except Exception:
            with self._lock:
                self.failures += 1
            SIDE_EFFECT_FAILURES.labels(task=name).inc()
            logger.exception("[SIDE_EFFECT] Task failed task=%s context=%s", name, context)

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)


class InlineTaskRunner(DetachedTaskRunner):
    """Runner síncrono para tests: mismo límite de errores, sin threads."""

    def __init__(self) -> None:
        self._closed = False
        self._lock = threading.Lock()
        self.failures = 0

    def submit(
        self,
        name: str,
        fn: Callable[..., Any],
        *args: Any,
        context: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> bool:
        self._guarded(name, fn, args, kwargs, context or {})
        return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return True

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._closed = True
