# -*- coding: utf-8 -*-
"""
credit_ledger/modules/credits/services.py

Motor de contabilidad de créditos.

Provee lógica de negocio para:
- ensure_balance_exists / get_balance
- credit: abonos a included o purchased
- debit: cargos por uso de features (included primero, luego purchased)
- refund_feature: reembolso de un cargo cuya feature falló
- expire_included: expiración de included al cierre del ciclo mensual
- get_ledger / check_credits / reconcile
- get_tier_credits / get_all_tier_credits

Cada operación que modifica saldo corre dentro de un SAVEPOINT
(session.begin_nested()): la actualización del saldo y sus movimientos
de ledger se confirman o se deshacen juntos. El commit es del llamador.

La restricción UNIQUE de credit_ledger.idempotency_key es el árbitro final
entre peticiones duplicadas concurrentes: quien pierde la carrera recibe
applied=False, nunca un error.

Autor: DoxAI
Fecha: 2026-10-18
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from credit_ledger.shared.config import get_settings
from credit_ledger.shared.utils.datetime_helpers import ensure_utc, ensure_utc_optional, utcnow
from . import metrics
from .enums import CreditType, TransactionType
from .errors import (
    CreditContentionError,
    IdempotencyConflict,
    InsufficientCreditsError,
    InvalidCreditAmountError,
)
from .models import CreditBalance, CreditLedgerEntry
from .repositories import BalanceRepository, LedgerRepository
from .schemas import (
    BalanceSnapshot,
    CreditCheck,
    CreditOptions,
    DebitOptions,
    LedgerEntryRead,
    LedgerPage,
    LedgerResult,
    ReconciliationReport,
    RefundOptions,
)
from .tiers import TierCredits, get_all_tier_credits, get_tier_credits

logger = logging.getLogger(__name__)

T = TypeVar("T")

PURCHASED_SUFFIX = ":purchased"
REFUND_SUFFIX = ":refund"


def refund_key_for(original_idempotency_key: str) -> str:
    """Clave del reembolso de un cargo."""
    return f"{original_idempotency_key}{REFUND_SUFFIX}"


def _validate_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidCreditAmountError(amount)
    return amount


class CreditAccountingService:
    """
    Servicio de contabilidad de créditos por cuenta.
    """

    def __init__(
        self,
        balance_repo: Optional[BalanceRepository] = None,
        ledger_repo: Optional[LedgerRepository] = None,
        max_debit_attempts: Optional[int] = None,
    ):
        self.balance_repo = balance_repo or BalanceRepository()
        self.ledger_repo = ledger_repo or LedgerRepository()
        self.max_debit_attempts = max_debit_attempts or get_settings().credits_debit_max_attempts

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------

    async def ensure_balance_exists(
        self,
        session: AsyncSession,
        account_id: UUID,
    ) -> None:
        """Crea la fila de saldo en cero si no existe. Idempotente."""
        await self.balance_repo.ensure_exists(session, account_id)

    async def get_balance(
        self,
        session: AsyncSession,
        account_id: UUID,
    ) -> BalanceSnapshot:
        """Saldo actual; ceros si la cuenta aún no tiene fila."""
        balance = await self.balance_repo.get(session, account_id)
        if balance is None:
            return BalanceSnapshot.empty(account_id)
        return BalanceSnapshot.from_balance(balance)

    async def get_ledger(
        self,
        session: AsyncSession,
        account_id: UUID,
        *,
        limit: int = 50,
        offset: int = 0,
        feature_type: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> LedgerPage:
        """
        Historial de movimientos, más recientes primero.

        limit se acota a [1, CREDITS_LEDGER_PAGE_MAX]; offset negativo vale 0.
        """
        limit = max(1, min(limit, get_settings().credits_ledger_page_max))
        offset = max(0, offset)
        entries, total = await self.ledger_repo.list_by_account(
            session,
            account_id,
            limit=limit,
            offset=offset,
            feature_type=feature_type,
            transaction_type=transaction_type,
        )
        return LedgerPage(
            entries=[LedgerEntryRead.model_validate(e) for e in entries],
            total=total,
            limit=limit,
            offset=offset,
        )

    async def check_credits(
        self,
        session: AsyncSession,
        account_id: UUID,
        required: int,
    ) -> CreditCheck:
        """Verificación previa de saldo para una feature. No modifica nada."""
        if isinstance(required, bool) or not isinstance(required, int) or required < 0:
            raise InvalidCreditAmountError(required)
        balance = await self.get_balance(session, account_id)
        return CreditCheck(
            has_credits=balance.total_credits >= required,
            required=required,
            available=balance.total_credits,
            balance=balance,
        )

    async def reconcile(
        self,
        session: AsyncSession,
        account_id: UUID,
    ) -> ReconciliationReport:
        """
        Compara cada bolsa del saldo con la suma del ledger para ese tipo.
        Un descuadre se registra en ERROR y se cuenta en métricas.
        """
        balance = await self.get_balance(session, account_id)
        sums = await self.ledger_repo.sum_by_credit_type(session, account_id)
        report = ReconciliationReport(
            account_id=account_id,
            included_balance=balance.included_credits,
            purchased_balance=balance.purchased_credits,
            included_ledger=sums[CreditType.INCLUDED.value],
            purchased_ledger=sums[CreditType.PURCHASED.value],
        )
        if not report.is_consistent:
            metrics.credits_reconciliation_mismatches_total.inc()
            logger.error(
                "Ledger mismatch for account %s: included balance=%d ledger=%d, purchased balance=%d ledger=%d",
                account_id,
                report.included_balance, report.included_ledger,
                report.purchased_balance, report.purchased_ledger,
            )
        return report

    def get_tier_credits(self, plan: Optional[str]) -> int:
        """Créditos mensuales incluidos del plan (0 si es desconocido)."""
        return get_tier_credits(plan)

    def get_all_tier_credits(self) -> List[TierCredits]:
        return get_all_tier_credits()

    # ------------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------------

    async def credit(
        self,
        session: AsyncSession,
        account_id: UUID,
        amount: int,
        options: CreditOptions,
    ) -> LedgerResult:
        """
        Abona créditos a la bolsa indicada.

        Idempotente vía options.idempotency_key: una clave ya registrada
        devuelve applied=False sin modificar nada.

        Raises:
            InvalidCreditAmountError: si amount no es un entero positivo
        """
        _validate_amount(amount)
        key = options.idempotency_key
        credit_type = CreditType(options.credit_type)

        if await self.ledger_repo.get_by_idempotency_key(session, key) is not None:
            return await self._replay(session, account_id, [key], operation="credit")

        await self.balance_repo.ensure_exists(session, account_id)

        async def _write() -> List[CreditLedgerEntry]:
            included, purchased = await self.balance_repo.increment(
                session, account_id, credit_type, amount
            )
            entry = await self.ledger_repo.create(
                session,
                account_id=account_id,
                amount=amount,
                balance_after=included + purchased,
                credit_type=credit_type,
                transaction_type=options.transaction_type,
                idempotency_key=key,
                description=options.description,
                entry_metadata=options.metadata,
                created_by=options.created_by,
            )
            return [entry]

        try:
            entries = await self._in_savepoint(session, key, _write)
        except IdempotencyConflict:
            return await self._replay(session, account_id, [key], operation="credit")

        metrics.credits_credited_total.labels(
            credit_type.value, TransactionType(options.transaction_type).value
        ).inc(amount)
        result = await self._result(session, account_id, entries)
        logger.info(
            "Credits added: account=%s %s=%+d total=%d type=%s key=%s",
            account_id, credit_type.value, amount, result.balance.total_credits,
            TransactionType(options.transaction_type).value, key,
        )
        return result

    async def debit(
        self,
        session: AsyncSession,
        account_id: UUID,
        amount: int,
        options: DebitOptions,
    ) -> LedgerResult:
        """
        Carga créditos por uso de una feature.

        Consume included primero y después purchased. Si el cargo toca ambas
        bolsas se escribe un movimiento por bolsa: el primero con la clave del
        llamador y el segundo con "<clave>:purchased".

        Raises:
            InvalidCreditAmountError: si amount no es un entero positivo
            InsufficientCreditsError: si el total no alcanza (sin mutación)
            CreditContentionError: si se agotan los reintentos de CAS
        """
        _validate_amount(amount)
        key = options.idempotency_key
        replay_keys = [key, f"{key}{PURCHASED_SUFFIX}"]

        if await self.ledger_repo.get_by_idempotency_key(session, key) is not None:
            return await self._replay(session, account_id, replay_keys, operation="debit")

        metadata = dict(options.feature_metadata or {})

        for attempt in range(1, self.max_debit_attempts + 1):
            balance = await self.balance_repo.get(session, account_id, for_update=True)
            included = balance.included_credits if balance else 0
            purchased = balance.purchased_credits if balance else 0
            total = included + purchased

            if total < amount:
                metrics.credits_insufficient_total.labels(options.feature_type).inc()
                logger.warning(
                    "Insufficient credits: account=%s required=%d available=%d feature=%s key=%s",
                    account_id, amount, total, options.feature_type, key,
                )
                raise InsufficientCreditsError(required=amount, available=total)

            from_included = min(included, amount)
            from_purchased = amount - from_included

            async def _write() -> Optional[List[CreditLedgerEntry]]:
                swapped = await self.balance_repo.compare_and_swap(
                    session,
                    account_id,
                    expected_included=included,
                    expected_purchased=purchased,
                    new_included=included - from_included,
                    new_purchased=purchased - from_purchased,
                )
                if not swapped:
                    return None

                entries: List[CreditLedgerEntry] = []
                running = total
                for credit_type, portion in (
                    (CreditType.INCLUDED, from_included),
                    (CreditType.PURCHASED, from_purchased),
                ):
                    if portion == 0:
                        continue
                    running -= portion
                    entries.append(
                        await self.ledger_repo.create(
                            session,
                            account_id=account_id,
                            amount=-portion,
                            balance_after=running,
                            credit_type=credit_type,
                            transaction_type=TransactionType.FEATURE_DEBIT,
                            feature_type=options.feature_type,
                            idempotency_key=key if not entries else f"{key}{PURCHASED_SUFFIX}",
                            description=options.description,
                            entry_metadata=metadata,
                            created_by=options.created_by,
                        )
                    )
                return entries

            try:
                entries = await self._in_savepoint(session, key, _write)
            except IdempotencyConflict:
                return await self._replay(session, account_id, replay_keys, operation="debit")

            if entries is not None:
                break

            metrics.credits_cas_retries_total.labels("debit").inc()
            logger.debug(
                "Debit CAS lost: account=%s attempt=%d/%d key=%s",
                account_id, attempt, self.max_debit_attempts, key,
            )
        else:
            logger.warning(
                "Debit contention exhausted: account=%s attempts=%d key=%s",
                account_id, self.max_debit_attempts, key,
            )
            raise CreditContentionError(account_id, self.max_debit_attempts)

        metrics.credits_debited_total.labels(options.feature_type).inc(amount)
        result = await self._result(session, account_id, entries)
        logger.info(
            "Credits debited: account=%s amount=%d (included=%d purchased=%d) total=%d feature=%s key=%s",
            account_id, amount, from_included, from_purchased,
            result.balance.total_credits, options.feature_type, key,
        )
        return result

    async def refund_feature(
        self,
        session: AsyncSession,
        account_id: UUID,
        amount: int,
        original_idempotency_key: str,
        options: RefundOptions,
    ) -> LedgerResult:
        """
        Reembolsa un cargo cuya feature falló.

        Clave: "<clave_original>:refund" (un segundo movimiento, si lo hay,
        usa "<clave_original>:refund:<bolsa>").

        Atribución por bolsa a partir de los movimientos del cargo original:
        - lo que salió de purchased vuelve a purchased;
        - lo que salió de included vuelve a included sólo si el cargo es del
          ciclo vigente (posterior al último abono mensual y antes de la
          expiración); si no, a purchased;
        - lo no atribuible (sin cargo original o monto mayor) va a purchased.
        """
        _validate_amount(amount)
        refund_key = refund_key_for(original_idempotency_key)
        replay_keys = [
            refund_key,
            f"{refund_key}:{CreditType.INCLUDED.value}",
            f"{refund_key}:{CreditType.PURCHASED.value}",
        ]

        if await self.ledger_repo.get_by_idempotency_key(session, refund_key) is not None:
            return await self._replay(session, account_id, replay_keys, operation="refund")

        originals = await self.ledger_repo.list_by_keys(
            session,
            [original_idempotency_key, f"{original_idempotency_key}{PURCHASED_SUFFIX}"],
            account_id=account_id,
        )
        originals = [
            e for e in originals if e.transaction_type == TransactionType.FEATURE_DEBIT.value
        ]
        balance = await self.balance_repo.get(session, account_id)
        to_included, to_purchased = self._allocate_refund(amount, originals, balance)

        if not originals:
            logger.warning(
                "Refund without original debit: account=%s key=%s amount=%d (credited to purchased)",
                account_id, original_idempotency_key, amount,
            )

        metadata = dict(options.feature_metadata or {})
        metadata.update(
            {
                "original_idempotency_key": original_idempotency_key,
                "feature_type": options.feature_type,
            }
        )

        await self.balance_repo.ensure_exists(session, account_id)

        async def _write() -> List[CreditLedgerEntry]:
            entries: List[CreditLedgerEntry] = []
            for credit_type, portion in (
                (CreditType.INCLUDED, to_included),
                (CreditType.PURCHASED, to_purchased),
            ):
                if portion == 0:
                    continue
                included, purchased = await self.balance_repo.increment(
                    session, account_id, credit_type, portion
                )
                entries.append(
                    await self.ledger_repo.create(
                        session,
                        account_id=account_id,
                        amount=portion,
                        balance_after=included + purchased,
                        credit_type=credit_type,
                        transaction_type=TransactionType.REFUND,
                        feature_type=options.feature_type,
                        idempotency_key=refund_key if not entries else f"{refund_key}:{credit_type.value}",
                        description=options.description,
                        entry_metadata=metadata,
                        created_by=options.created_by,
                    )
                )
            return entries

        try:
            entries = await self._in_savepoint(session, refund_key, _write)
        except IdempotencyConflict:
            return await self._replay(session, account_id, replay_keys, operation="refund")

        for entry in entries:
            metrics.credits_refunded_total.labels(options.feature_type, entry.credit_type).inc(entry.amount)
        result = await self._result(session, account_id, entries)
        logger.info(
            "Credits refunded: account=%s amount=%d (included=%d purchased=%d) total=%d feature=%s original_key=%s",
            account_id, amount, to_included, to_purchased,
            result.balance.total_credits, options.feature_type, original_idempotency_key,
        )
        return result

    async def expire_included(
        self,
        session: AsyncSession,
        account_id: UUID,
        idempotency_key: str,
        *,
        description: Optional[str] = None,
        metadata: Optional[dict] = None,
        created_by: Optional[str] = None,
    ) -> LedgerResult:
        """
        Expira los créditos included de la cuenta (primitiva del ciclo mensual).

        Si included > 0 lo deja en cero y escribe un movimiento monthly_expire
        de -included; si no, no hace nada (applied=False, sin movimientos).
        """
        if await self.ledger_repo.get_by_idempotency_key(session, idempotency_key) is not None:
            return await self._replay(session, account_id, [idempotency_key], operation="expire")

        for attempt in range(1, self.max_debit_attempts + 1):
            balance = await self.balance_repo.get(session, account_id, for_update=True)
            if balance is None or balance.included_credits <= 0:
                logger.debug("Nothing to expire: account=%s key=%s", account_id, idempotency_key)
                return LedgerResult(
                    applied=False,
                    entries=[],
                    balance=BalanceSnapshot.from_balance(balance) if balance else BalanceSnapshot.empty(account_id),
                )

            included = balance.included_credits
            purchased = balance.purchased_credits

            async def _write() -> Optional[List[CreditLedgerEntry]]:
                swapped = await self.balance_repo.compare_and_swap(
                    session,
                    account_id,
                    expected_included=included,
                    expected_purchased=purchased,
                    new_included=0,
                    new_purchased=purchased,
                    included_credits_expire_at=None,
                )
                if not swapped:
                    return None
                entry = await self.ledger_repo.create(
                    session,
                    account_id=account_id,
                    amount=-included,
                    balance_after=purchased,
                    credit_type=CreditType.INCLUDED,
                    transaction_type=TransactionType.MONTHLY_EXPIRE,
                    idempotency_key=idempotency_key,
                    description=description,
                    entry_metadata=metadata,
                    created_by=created_by,
                )
                return [entry]

            try:
                entries = await self._in_savepoint(session, idempotency_key, _write)
            except IdempotencyConflict:
                return await self._replay(session, account_id, [idempotency_key], operation="expire")

            if entries is not None:
                break

            metrics.credits_cas_retries_total.labels("expire").inc()
        else:
            raise CreditContentionError(account_id, self.max_debit_attempts)

        metrics.credits_expired_total.inc(included)
        result = await self._result(session, account_id, entries)
        logger.info(
            "Included credits expired: account=%s expired=%d total=%d key=%s",
            account_id, included, result.balance.total_credits, idempotency_key,
        )
        return result

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    async def _in_savepoint(
        self,
        session: AsyncSession,
        idempotency_key: str,
        write: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Ejecuta write() dentro de un SAVEPOINT.

        Una violación de UNIQUE sobre la clave de idempotencia (otra
        transacción la registró primero) deshace el SAVEPOINT completo y se
        traduce a IdempotencyConflict. Cualquier otro IntegrityError se propaga.
        """
        try:
            async with session.begin_nested():
                return await write()
        except IntegrityError as exc:
            if await self.ledger_repo.exists(session, idempotency_key):
                logger.debug("Idempotency race lost: key=%s", idempotency_key)
                raise IdempotencyConflict(idempotency_key) from exc
            raise

    async def _replay(
        self,
        session: AsyncSession,
        account_id: UUID,
        keys: List[str],
        *,
        operation: str,
    ) -> LedgerResult:
        """Resultado para una clave ya registrada: movimientos originales y saldo actual."""
        metrics.credits_idempotent_replays_total.labels(operation).inc()
        entries = await self.ledger_repo.list_by_keys(session, keys)
        logger.debug(
            "Idempotent %s: key=%s already applied (%d entries)", operation, keys[0], len(entries)
        )
        return LedgerResult(
            applied=False,
            entries=[LedgerEntryRead.model_validate(e) for e in entries],
            balance=await self.get_balance(session, account_id),
        )

    async def _result(
        self,
        session: AsyncSession,
        account_id: UUID,
        entries: List[CreditLedgerEntry],
    ) -> LedgerResult:
        return LedgerResult(
            applied=True,
            entries=[LedgerEntryRead.model_validate(e) for e in entries],
            balance=await self.get_balance(session, account_id),
        )

    @staticmethod
    def _allocate_refund(
        amount: int,
        originals: List[CreditLedgerEntry],
        balance: Optional[CreditBalance],
        now: Optional[datetime] = None,
    ) -> tuple[int, int]:
        """
        Reparte un reembolso entre (included, purchased).
        """
        drawn_purchased = sum(
            -e.amount for e in originals if e.credit_type == CreditType.PURCHASED.value
        )
        included_entries = [e for e in originals if e.credit_type == CreditType.INCLUDED.value]
        drawn_included = sum(-e.amount for e in included_entries)

        remaining = amount
        to_purchased = min(remaining, drawn_purchased)
        remaining -= to_purchased

        to_included = 0
        if drawn_included and remaining:
            portion = min(remaining, drawn_included)
            remaining -= portion
            debit_at = min(ensure_utc(e.created_at) for e in included_entries)
            if _in_current_cycle(debit_at, balance, now or utcnow()):
                to_included = portion
            else:
                to_purchased += portion

        # Resto no atribuible a ningún cargo
        to_purchased += remaining
        return to_included, to_purchased


def _in_current_cycle(debit_at: datetime, balance: Optional[CreditBalance], now: datetime) -> bool:
    """True si un cargo a included pertenece al ciclo mensual vigente."""
    if balance is None:
        return False
    last_grant = ensure_utc_optional(balance.last_monthly_grant_at)
    expire_at = ensure_utc_optional(balance.included_credits_expire_at)
    if last_grant is not None and debit_at < last_grant:
        return False
    if expire_at is not None and now >= expire_at:
        return False
    return True


__all__ = [
    "CreditAccountingService",
    "refund_key_for",
    "PURCHASED_SUFFIX",
    "REFUND_SUFFIX",
]
