"""
Tests for the points ledger, including concurrent redemption.
"""

import asyncio

import pytest
from sqlalchemy import select

from app.core.exceptions import InsufficientBalance, InvalidAmount, Unavailable
from app.models.ledger import LedgerTransaction, PointsAccount
from app.models.reward import Reward
from app.services import ledger_service

SUBJECT = 1


async def _all_transactions(db, subject_id=SUBJECT):
    result = await db.execute(
        select(LedgerTransaction).where(LedgerTransaction.subject_id == subject_id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_new_subject_has_zero_balance(db_session):
    assert await ledger_service.balance_of(db_session, SUBJECT) == 0


@pytest.mark.asyncio
async def test_earn_appends_positive_transaction(db_session):
    txn = await ledger_service.earn(db_session, SUBJECT, 100, "Monthly payment")

    assert txn.id is not None
    assert txn.delta == 100
    assert txn.reward_id is None
    assert txn.sequence == 1
    assert await ledger_service.balance_of(db_session, SUBJECT) == 100


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5])
async def test_non_positive_amounts_are_rejected(db_session, amount):
    with pytest.raises(InvalidAmount):
        await ledger_service.earn(db_session, SUBJECT, amount)
    with pytest.raises(InvalidAmount):
        await ledger_service.redeem(db_session, SUBJECT, amount)
    assert await _all_transactions(db_session) == []


@pytest.mark.asyncio
async def test_redeem_debits_balance(db_session):
    await ledger_service.earn(db_session, SUBJECT, 50)
    txn = await ledger_service.redeem(db_session, SUBJECT, 30, description="Towel")

    assert txn.delta == -30
    assert await ledger_service.balance_of(db_session, SUBJECT) == 20


@pytest.mark.asyncio
async def test_sequential_redeems_stop_at_zero(db_session):
    """balance 50: redeem(30) succeeds, second redeem(30) fails and appends nothing."""
    await ledger_service.earn(db_session, SUBJECT, 50)
    await ledger_service.redeem(db_session, SUBJECT, 30)

    with pytest.raises(InsufficientBalance) as exc_info:
        await ledger_service.redeem(db_session, SUBJECT, 30)

    assert exc_info.value.details == {"subject_id": SUBJECT, "requested": 30, "balance": 20}
    assert await ledger_service.balance_of(db_session, SUBJECT) == 20
    assert len(await _all_transactions(db_session)) == 2


@pytest.mark.asyncio
async def test_redeem_without_history_fails(db_session):
    with pytest.raises(InsufficientBalance):
        await ledger_service.redeem(db_session, SUBJECT, 1)
    assert await _all_transactions(db_session) == []


@pytest.mark.asyncio
async def test_redeem_exact_balance_reaches_zero(db_session):
    await ledger_service.earn(db_session, SUBJECT, 40)
    await ledger_service.redeem(db_session, SUBJECT, 40)
    assert await ledger_service.balance_of(db_session, SUBJECT) == 0


@pytest.mark.asyncio
async def test_concurrent_unaffordable_redeems_both_fail(session_factory):
    """balance 50, two concurrent redeem(60): both InsufficientBalance."""
    async with session_factory() as db:
        await ledger_service.earn(db, SUBJECT, 50)

    async def attempt():
        async with session_factory() as db:
            try:
                await ledger_service.redeem(db, SUBJECT, 60)
                return "ok"
            except InsufficientBalance:
                return "insufficient"

    results = await asyncio.gather(attempt(), attempt())
    assert results == ["insufficient", "insufficient"]

    async with session_factory() as db:
        assert await ledger_service.balance_of(db, SUBJECT) == 50


@pytest.mark.asyncio
async def test_concurrent_redeems_never_overspend(session_factory):
    """balance 50, two concurrent redeem(30): exactly one succeeds."""
    async with session_factory() as db:
        await ledger_service.earn(db, SUBJECT, 50)

    async def attempt():
        async with session_factory() as db:
            try:
                await ledger_service.redeem(db, SUBJECT, 30)
                return "ok"
            except InsufficientBalance:
                return "insufficient"

    results = await asyncio.gather(*(attempt() for _ in range(5)))
    assert sorted(results) == ["insufficient"] * 4 + ["ok"]

    async with session_factory() as db:
        assert await ledger_service.balance_of(db, SUBJECT) == 20
        assert len(await _all_transactions(db)) == 2


@pytest.mark.asyncio
async def test_balance_always_equals_sum_of_deltas(session_factory):
    operations = [("earn", 100), ("redeem", 40), ("earn", 20), ("redeem", 15), ("redeem", 500)]
    async with session_factory() as db:
        for kind, amount in operations:
            try:
                if kind == "earn":
                    await ledger_service.earn(db, SUBJECT, amount)
                else:
                    await ledger_service.redeem(db, SUBJECT, amount)
            except InsufficientBalance:
                pass

            balance = await ledger_service.balance_of(db, SUBJECT)
            assert balance == sum(t.delta for t in await _all_transactions(db))
            assert balance >= 0

        assert await ledger_service.balance_of(db, SUBJECT) == 65


@pytest.mark.asyncio
async def test_subjects_are_independent(db_session):
    await ledger_service.earn(db_session, 1, 10)
    await ledger_service.earn(db_session, 2, 99)

    assert await ledger_service.balance_of(db_session, 1) == 10
    assert await ledger_service.balance_of(db_session, 2) == 99
    with pytest.raises(InsufficientBalance):
        await ledger_service.redeem(db_session, 1, 11)


@pytest.mark.asyncio
async def test_settlement_reference_is_credited_once(db_session):
    first = await ledger_service.earn(db_session, SUBJECT, 100, "Payment", reference="settlement:PM-1")
    again = await ledger_service.earn(db_session, SUBJECT, 100, "Payment", reference="settlement:PM-1")

    assert again.id == first.id
    assert await ledger_service.balance_of(db_session, SUBJECT) == 100


@pytest.mark.asyncio
async def test_each_append_bumps_account_version(db_session):
    await ledger_service.earn(db_session, SUBJECT, 10)
    await ledger_service.earn(db_session, SUBJECT, 10)
    await ledger_service.redeem(db_session, SUBJECT, 5)

    version = await db_session.scalar(
        select(PointsAccount.version).where(PointsAccount.subject_id == SUBJECT)
    )
    sequences = [t.sequence for t in await _all_transactions(db_session)]
    assert version == 3
    assert sorted(sequences) == [1, 2, 3]


@pytest.mark.asyncio
async def test_version_conflict_is_retried(db_session, monkeypatch):
    original = ledger_service._claim_next_sequence
    calls = []

    async def conflict_once(db, subject_id):
        calls.append(subject_id)
        if len(calls) == 1:
            return None
        return await original(db, subject_id)

    monkeypatch.setattr(ledger_service, "_claim_next_sequence", conflict_once)

    txn = await ledger_service.earn(db_session, SUBJECT, 25)
    assert len(calls) == 2
    assert txn.delta == 25
    assert await ledger_service.balance_of(db_session, SUBJECT) == 25


@pytest.mark.asyncio
async def test_exhausted_retries_report_unavailable(db_session, monkeypatch):
    async def always_conflict(db, subject_id):
        return None

    monkeypatch.setattr(ledger_service, "_claim_next_sequence", always_conflict)

    with pytest.raises(Unavailable):
        await ledger_service.earn(db_session, SUBJECT, 25)
    assert await _all_transactions(db_session) == []


@pytest.mark.asyncio
async def test_history_is_in_timestamp_order(db_session):
    for amount in (5, 6, 7):
        await ledger_service.earn(db_session, SUBJECT, amount)
    await ledger_service.redeem(db_session, SUBJECT, 3)

    history = await ledger_service.history(db_session, SUBJECT)
    assert [t.delta for t in history] == [5, 6, 7, -3]


@pytest.mark.asyncio
async def test_history_limit_keeps_most_recent(db_session):
    for amount in range(1, 6):
        await ledger_service.earn(db_session, SUBJECT, amount)

    history = await ledger_service.history(db_session, SUBJECT, limit=2)
    assert [t.delta for t in history] == [4, 5]


@pytest.mark.asyncio
async def test_redemption_history_filters_debits(db_session):
    """[+100, -40 (X), +20, -15 (Y)] -> the two debits, in order, as absolute values."""
    x = Reward(name="Protein Bar", cost_points=40)
    y = Reward(name="Sticker", cost_points=15)
    db_session.add_all([x, y])
    await db_session.commit()

    await ledger_service.earn(db_session, SUBJECT, 100)
    await ledger_service.redeem(db_session, SUBJECT, 40, reward_id=x.id, description=x.name)
    await ledger_service.earn(db_session, SUBJECT, 20)
    await ledger_service.redeem(db_session, SUBJECT, 15, reward_id=y.id, description=y.name)

    entries = await ledger_service.redemption_history(db_session, SUBJECT)

    assert [(e.points, e.reward_name) for e in entries] == [(40, "Protein Bar"), (15, "Sticker")]
    assert [e.reward_id for e in entries] == [x.id, y.id]


def test_redemptions_from_ignores_credits():
    rows = [
        (LedgerTransaction(id=1, delta=100, description="pay"), None),
        (LedgerTransaction(id=2, delta=-40, description="X", reward_id=7), "X"),
        (LedgerTransaction(id=3, delta=20, description="pay"), None),
        (LedgerTransaction(id=4, delta=-15, description="Y", reward_id=8), "Y"),
    ]
    entries = ledger_service.redemptions_from(rows)
    assert [(e.id, e.points, e.reward_name) for e in entries] == [(2, 40, "X"), (4, 15, "Y")]


@pytest.mark.asyncio
async def test_redemption_history_cap_counts_only_debits(db_session):
    bar = Reward(name="Protein Bar", cost_points=40)
    db_session.add(bar)
    await db_session.commit()

    await ledger_service.earn(db_session, SUBJECT, 100)
    await ledger_service.redeem(db_session, SUBJECT, 40, reward_id=bar.id, description=bar.name)
    for _ in range(3):
        await ledger_service.earn(db_session, SUBJECT, 1)

    entries = await ledger_service.redemption_history(db_session, SUBJECT, limit=3)

    assert [(e.points, e.reward_name) for e in entries] == [(40, "Protein Bar")]
