# -*- coding: utf-8 -*-
"""
credit_ledger/shared/scheduler/scheduler_service.py

Envoltura mínima sobre APScheduler (AsyncIOScheduler) para jobs cron en UTC.

El motor de créditos sólo registra un job (el ciclo mensual), pero la
envoltura no sabe nada de créditos: recibe una corrutina y una expresión
cron de 5 campos.

Autor: DoxAI
Fecha: 2026-10-18
"""

import logging
from typing import Any, Callable, Optional, Union

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

SCHEDULER_TIMEZONE = "UTC"


def parse_cron_expression(cron_expression: str) -> CronTrigger:
    """
    "min hora día mes día_semana" -> CronTrigger en UTC.

    Raises:
        ValueError: si la expresión no tiene exactamente 5 campos
    """
    fields = cron_expression.split()
    if len(fields) != 5:
        raise ValueError(
            f"Expresión cron inválida {cron_expression!r}: se esperaban 5 campos"
        )
    return CronTrigger.from_crontab(" ".join(fields), timezone=SCHEDULER_TIMEZONE)


def _describe(job: Job) -> dict:
    # next_run_time no existe mientras el job está pendiente (scheduler detenido)
    return {
        "id": job.id,
        "name": job.name,
        "trigger": str(job.trigger),
        "next_run": getattr(job, "next_run_time", None),
        "pending": job.pending,
    }


class SchedulerService:
    """
    Scheduler de la app con un único job store en memoria.

    Un job nunca corre en paralelo consigo mismo (max_instances=1) y las
    ejecuciones perdidas se combinan en una sola.
    """

    def __init__(self, misfire_grace_time: int = 300):
        self._scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            executors={"default": AsyncIOExecutor()},
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": misfire_grace_time,
            },
            timezone=SCHEDULER_TIMEZONE,
        )
        self._started = False
        logger.info("SchedulerService initialized (tz=%s)", SCHEDULER_TIMEZONE)

    def start(self) -> None:
        """Arranca el scheduler; debe llamarse con un event loop corriendo."""
        if self._started:
            return
        self._scheduler.start()
        self._started = True
        logger.info("SchedulerService started with %d job(s)", len(self._scheduler.get_jobs()))

    def shutdown(self, wait: bool = True) -> None:
        if not self._started:
            return
        self._scheduler.shutdown(wait=wait)
        self._started = False
        logger.info("SchedulerService stopped")

    def add_cron_job(
        self,
        func: Callable[..., Any],
        job_id: str,
        cron_expression: Union[str, CronTrigger],
        **kwargs: Any,
    ) -> str:
        """
        Registra (o reemplaza, si el id ya existe) un job cron.

        Args:
            func: callable o corrutina a ejecutar
            job_id: identificador estable del job
            cron_expression: expresión de 5 campos o un CronTrigger ya armado
            **kwargs: argumentos con los que se invocará func
        """
        trigger = (
            cron_expression
            if isinstance(cron_expression, CronTrigger)
            else parse_cron_expression(cron_expression)
        )
        self._scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            name=job_id,
            kwargs=kwargs,
            replace_existing=True,
        )
        logger.info("Job '%s' scheduled (%s)", job_id, trigger)
        return job_id

    def remove_job(self, job_id: str) -> bool:
        """False si el job no existía."""
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            logger.warning("Job '%s' not found, nothing removed", job_id)
            return False
        logger.info("Job '%s' removed", job_id)
        return True

    def get_jobs(self) -> list[dict]:
        return [_describe(job) for job in self._scheduler.get_jobs()]

    def get_job_status(self, job_id: str) -> Optional[dict]:
        job = self._scheduler.get_job(job_id)
        return _describe(job) if job is not None else None

    @property
    def is_running(self) -> bool:
        return self._started and self._scheduler.running


_scheduler_instance: Optional[SchedulerService] = None


def get_scheduler() -> SchedulerService:
    """Instancia compartida por la app (se crea en el primer uso)."""
    global _scheduler_instance
    if _scheduler_instance is None:
        _scheduler_instance = SchedulerService()
    return _scheduler_instance


__all__ = ["SchedulerService", "get_scheduler", "parse_cron_expression"]
# Fin del archivo credit_ledger/shared/scheduler/scheduler_service.py
