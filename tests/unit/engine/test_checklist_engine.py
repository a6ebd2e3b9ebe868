from decimal import Decimal

import pytest

from src.core.checklist import ChecklistEngine, overall_checklist_risk, warning_from_check
from src.core.ledger import SpendWindow
from src.core.models import ChecklistItem, Position
from src.core.risk import analyze_portfolio_risk
from tests.factories import NOW, PORTFOLIO_ID, cash_balance, outcome, position, rule_set

CHECK_IDS = [
    "cash-availability",
    "position-size",
    "investment-limits",
    "cooldown-period",
    "consecutive-losses",
    "portfolio-risk",
]


def _evaluate(
    *,
    planned: str,
    positions=(),
    balance=None,
    rules=None,
    spend=None,
    outcomes=(),
    symbol="AAPL",
):
    rules = rules or rule_set()
    analysis = analyze_portfolio_risk(
        portfolio_id=PORTFOLIO_ID,
        positions=list(positions),
        rule_set=rules,
        cash_balance=balance,
        analysis_date=NOW,
    )
    return ChecklistEngine.evaluate(
        portfolio_id=PORTFOLIO_ID,
        symbol=symbol,
        planned_amount=Decimal(planned),
        positions=list(positions),
        cash_balance=balance,
        rule_set=rules,
        risk_analysis=analysis,
        spend=spend or SpendWindow(),
        now=NOW,
        outcomes=list(outcomes),
    )


def _check(checklist, check_id):
    return next(c for c in checklist.checks if c.id == check_id)


def test_fresh_account_small_purchase_passes_everything():
    checklist = _evaluate(planned="50000", balance=cash_balance("1000000", "1000000"))

    assert _check(checklist, "cash-availability").status == "PASS"
    assert _check(checklist, "position-size").status == "PASS"
    assert all(c.status == "PASS" for c in checklist.checks)
    assert checklist.can_proceed is True
    assert checklist.overall_risk == "LOW"
    assert checklist.warnings == []


def test_insufficient_cash_blocks():
    checklist = _evaluate(planned="50000", balance=cash_balance("1000000", "40000"))

    cash = _check(checklist, "cash-availability")
    assert cash.status == "FAIL"
    assert cash.is_blocking is True
    assert "Insufficient" in cash.message
    assert checklist.can_proceed is False
    assert checklist.overall_risk == "HIGH"


def test_recent_trade_triggers_non_blocking_cooldown_warning():
    checklist = _evaluate(
        planned="50000",
        positions=[position("AAPL", "10", "100", traded_hours_ago=2)],
        balance=cash_balance("1000000", "999000"),
    )

    cooldown = _check(checklist, "cooldown-period")
    assert cooldown.status == "WARNING"
    assert "22 hours" in cooldown.message
    assert cooldown.is_blocking is False
    assert checklist.can_proceed is True


def test_cooldown_reads_trade_date_without_offset_as_utc():
    recent = position("AAPL", "10", "100", traded_hours_ago=2).model_dump()
    recent["trade_date"] = recent["trade_date"].replace(tzinfo=None)

    checklist = _evaluate(
        planned="50000",
        positions=[Position.model_validate(recent)],
        balance=cash_balance("1000000", "999000"),
    )

    cooldown = _check(checklist, "cooldown-period")
    assert cooldown.status == "WARNING"
    assert "22 hours" in cooldown.message


def test_position_amount_ceiling_blocks():
    checklist = _evaluate(
        planned="50000",
        positions=[position("AAPL", "1200", "1000")],
        balance=cash_balance("3000000", "1800000"),
    )

    size = _check(checklist, "position-size")
    assert size.status == "FAIL"
    assert size.is_blocking is True
    assert checklist.can_proceed is False


def test_checks_are_always_emitted_in_fixed_order():
    checklist = _evaluate(planned="1", balance=None)

    assert [c.id for c in checklist.checks] == CHECK_IDS
    assert [c.category for c in checklist.checks] == [
        "CASH",
        "POSITION",
        "RULES",
        "RULES",
        "POSITION",
        "PORTFOLIO",
    ]


def test_unknown_cash_fails_cash_availability():
    checklist = _evaluate(planned="1000", balance=None)

    cash = _check(checklist, "cash-availability")
    assert cash.status == "FAIL"
    assert cash.is_blocking is True
    assert "Insufficient" in cash.message


def test_cash_reserve_warning_after_purchase():
    checklist = _evaluate(planned="50000", balance=cash_balance("1000000", "120000"))

    cash = _check(checklist, "cash-availability")
    assert cash.status == "WARNING"
    assert cash.is_blocking is False


def test_position_share_warning_is_non_blocking():
    checklist = _evaluate(
        planned="300000",
        positions=[position("MSFT", "1", "100000")],
        balance=cash_balance("1000000", "900000"),
    )

    size = _check(checklist, "position-size")
    assert size.status == "WARNING"
    assert size.is_blocking is False


def test_daily_limit_uses_running_spend():
    balance = cash_balance("10000000", "10000000")

    fresh = _evaluate(planned="200000", balance=balance)
    spent = _evaluate(
        planned="200000",
        balance=balance,
        spend=SpendWindow(daily=Decimal("400000"), monthly=Decimal("400000")),
    )

    assert _check(fresh, "investment-limits").status == "PASS"
    limits = _check(spent, "investment-limits")
    assert limits.status == "WARNING"
    assert "Daily" in limits.message
    assert limits.is_blocking is False


def test_monthly_limit_uses_running_spend():
    checklist = _evaluate(
        planned="200000",
        balance=cash_balance("10000000", "10000000"),
        spend=SpendWindow(daily=Decimal("0"), monthly=Decimal("1900000")),
    )

    limits = _check(checklist, "investment-limits")
    assert limits.status == "WARNING"
    assert "Monthly" in limits.message


def test_planned_amount_alone_over_daily_cap_warns():
    checklist = _evaluate(planned="600000", balance=cash_balance("10000000", "10000000"))

    assert _check(checklist, "investment-limits").status == "WARNING"


def test_cooldown_passes_once_elapsed():
    checklist = _evaluate(
        planned="1000",
        positions=[position("AAPL", "10", "100", traded_hours_ago=24)],
        balance=cash_balance("1000000", "999000"),
    )

    assert _check(checklist, "cooldown-period").status == "PASS"


def test_drawdown_mode_warns_on_current_loss():
    checklist = _evaluate(
        planned="1000",
        positions=[position("AAPL", "10", "100", "85")],
        balance=cash_balance("1000000", "999000"),
    )

    losses = _check(checklist, "consecutive-losses")
    assert losses.status == "WARNING"
    assert "15.0%" in losses.message


def test_drawdown_mode_ignores_realized_streak():
    checklist = _evaluate(
        planned="1000",
        balance=cash_balance("1000000", "1000000"),
        outcomes=[outcome("AAPL", "-1", days_ago=d) for d in (1, 2, 3)],
    )

    assert _check(checklist, "consecutive-losses").status == "PASS"


def test_streak_mode_warns_on_consecutive_realized_losses():
    rules = rule_set(loss_guard_mode="STREAK")
    checklist = _evaluate(
        planned="1000",
        positions=[position("AAPL", "10", "100", "85")],
        balance=cash_balance("1000000", "999000"),
        rules=rules,
        outcomes=[outcome("AAPL", "-1", days_ago=d) for d in (1, 2, 3)],
    )

    losses = _check(checklist, "consecutive-losses")
    assert losses.status == "WARNING"
    assert "3 consecutive" in losses.message


def test_streak_mode_ignores_current_drawdown():
    checklist = _evaluate(
        planned="1000",
        positions=[position("AAPL", "10", "100", "85")],
        balance=cash_balance("1000000", "999000"),
        rules=rule_set(loss_guard_mode="STREAK"),
        outcomes=[outcome("AAPL", "-1", days_ago=1), outcome("AAPL", "5", days_ago=2)],
    )

    assert _check(checklist, "consecutive-losses").status == "PASS"


@pytest.mark.parametrize("use_drawdown", [True, False])
def test_combined_mode_warns_on_either_signal(use_drawdown):
    positions = [position("AAPL", "10", "100", "85" if use_drawdown else "100")]
    outcomes = [] if use_drawdown else [outcome("AAPL", "-1", days_ago=d) for d in (1, 2, 3)]

    checklist = _evaluate(
        planned="1000",
        positions=positions,
        balance=cash_balance("1000000", "999000"),
        rules=rule_set(loss_guard_mode="DRAWDOWN_OR_STREAK"),
        outcomes=outcomes,
    )

    assert _check(checklist, "consecutive-losses").status == "WARNING"


def test_portfolio_risk_ceiling_warning():
    checklist = _evaluate(
        planned="1000",
        balance=cash_balance("1000000", "1000000"),
        rules=rule_set(max_portfolio_risk=4),
    )

    assert _check(checklist, "portfolio-risk").status == "WARNING"


def test_warnings_mirror_non_pass_items():
    checklist = _evaluate(
        planned="600000",
        positions=[position("AAPL", "10", "100", "85", traded_hours_ago=1)],
        balance=cash_balance("1000000", "500000"),
    )

    non_pass = [c for c in checklist.checks if c.status != "PASS"]
    assert [w.id for w in checklist.warnings] == [c.id for c in non_pass]
    cash_warning = next(w for w in checklist.warnings if w.id == "cash-availability")
    assert cash_warning.type == "HIGH"
    assert cash_warning.can_proceed is False
    assert checklist.can_proceed is False


def test_warning_conversion_maps_categories_and_severity():
    def item(category, status, blocking=False):
        return ChecklistItem(
            id="x",
            category=category,
            title="t",
            status=status,
            message="m",
            is_blocking=blocking,
        )

    assert warning_from_check(item("CASH", "FAIL", True)).category == "CASH"
    assert warning_from_check(item("CASH", "FAIL", True)).type == "HIGH"
    assert warning_from_check(item("POSITION", "WARNING")).category == "POSITION"
    assert warning_from_check(item("POSITION", "WARNING")).type == "MEDIUM"
    assert warning_from_check(item("PORTFOLIO", "WARNING")).category == "CONCENTRATION"
    assert warning_from_check(item("RULES", "WARNING")).category == "RULE_VIOLATION"
    assert warning_from_check(item("MARKET", "WARNING")).category == "RULE_VIOLATION"
    assert warning_from_check(item("RULES", "WARNING")).can_proceed is True


def test_overall_risk_levels():
    def item(status, blocking=False):
        return ChecklistItem(
            id="x", category="RULES", title="t", status=status, message="m", is_blocking=blocking
        )

    assert overall_checklist_risk([item("PASS")] * 6) == "LOW"
    assert overall_checklist_risk([item("WARNING"), item("PASS")]) == "MEDIUM"
    assert overall_checklist_risk([item("WARNING")] * 2) == "MEDIUM"
    assert overall_checklist_risk([item("WARNING")] * 3) == "HIGH"
    assert overall_checklist_risk([item("FAIL", True), item("PASS")]) == "HIGH"
    assert overall_checklist_risk([item("FAIL", False), item("PASS")]) == "LOW"


def test_only_fail_items_may_block():
    with pytest.raises(ValueError):
        ChecklistItem(
            id="x", category="RULES", title="t", status="WARNING", message="m", is_blocking=True
        )


def test_same_inputs_produce_identical_checklist_json():
    def build():
        return _evaluate(
            planned="300000",
            positions=[
                position("AAPL", "10", "100", "85", traded_hours_ago=2),
                position("MSFT", "3", "1000"),
            ],
            balance=cash_balance("1000000", "120000"),
            rules=rule_set(loss_guard_mode="DRAWDOWN_OR_STREAK"),
            spend=SpendWindow(daily=Decimal("400000"), monthly=Decimal("1900000")),
            outcomes=[outcome("AAPL", "-1", days_ago=d) for d in (1, 2, 3)],
        )

    first = build()
    second = build()

    assert first.model_dump_json() == second.model_dump_json()
    assert [c.status for c in first.checks] != ["PASS"] * 6
