"""Unit tests for the time machine simulator"""

import pytest
from twin_analytics.domain.aggregation import aggregate_monthly
from twin_analytics.domain.exceptions import InvalidHorizonError, ValidationError
from twin_analytics.domain.models import ScenarioModifier
from twin_analytics.domain.time_machine import PRESETS, list_presets, project_months, simulate


@pytest.mark.parametrize("months_forward", [0, -3, 121])
def test_horizon_out_of_range(steady_history, steady_transactions, months_forward):
    with pytest.raises(InvalidHorizonError):
        simulate(steady_history, steady_transactions, [], months_forward=months_forward)


def test_horizon_limit_is_configurable(steady_history, steady_transactions):
    simulate(steady_history, steady_transactions, [], months_forward=24, max_horizon=24)

    with pytest.raises(InvalidHorizonError):
        simulate(steady_history, steady_transactions, [], months_forward=25, max_horizon=24)


def test_projection_length_and_month_keys(steady_history, steady_transactions):
    result = simulate(steady_history, steady_transactions, [], months_forward=12)

    assert result.months_projected == 12
    assert len(result.projected_months) == 12
    assert result.projected_months[0].month == "2024-07"
    assert result.projected_months[-1].month == "2025-06"


def test_inputs_are_not_mutated(steady_history, steady_transactions):
    history_snapshot = list(steady_history)
    transactions_snapshot = list(steady_transactions)

    simulate(steady_history, steady_transactions, [PRESETS["preset_3"]], months_forward=6)

    assert steady_history == history_snapshot
    assert steady_transactions == transactions_snapshot


def test_projection_continues_running_balance(steady_history, steady_transactions):
    projected = project_months(steady_history, steady_transactions, [], 3)

    first = projected[0]
    assert first.end_balance == pytest.approx(
        steady_history[-1].end_balance + first.total_deposits - first.total_spending
    )


def test_modifier_effects_are_additive(steady_history, steady_transactions):
    """Two savings modifiers of 100 and 50 move 150 a month, not 100 or 50"""
    plain = project_months(steady_history, steady_transactions, [], 12)
    both = project_months(
        steady_history,
        steady_transactions,
        [ScenarioModifier(extra_monthly_savings=100), ScenarioModifier(extra_monthly_savings=50)],
        12,
    )

    for before, after in zip(plain, both):
        assert after.savings_transfers - before.savings_transfers == pytest.approx(150)
        assert after.total_spending - before.total_spending == pytest.approx(150)


def test_income_change_percent_composes(steady_history, steady_transactions):
    projected = project_months(
        steady_history,
        steady_transactions,
        [ScenarioModifier(income_change_percent=10), ScenarioModifier(income_change_percent=5)],
        3,
    )

    assert [m.total_deposits for m in projected] == pytest.approx([5750] * 3)


def test_lose_income_stream_drops_smallest_source(two_source_transactions):
    history = aggregate_monthly(two_source_transactions)
    projected = project_months(
        history,
        two_source_transactions,
        [ScenarioModifier(lose_income_stream=True, start_month=3)],
        6,
    )

    assert [m.total_deposits for m in projected] == pytest.approx([5000, 5000, 4000, 4000, 4000, 4000])
    assert [m.income_source_count for m in projected] == [2, 2, 1, 1, 1, 1]


def test_switch_to_salaried_flattens_income(gig_transactions):
    history = aggregate_monthly(gig_transactions)
    average = sum(m.total_deposits for m in history) / len(history)

    projected = project_months(history, gig_transactions, [ScenarioModifier(switch_to_salaried=True)], 6)

    assert [m.total_deposits for m in projected] == pytest.approx([average] * 6)
    assert all(m.has_payroll_deposit for m in projected)


def test_one_time_expense_lands_once(steady_history, steady_transactions):
    plain = project_months(steady_history, steady_transactions, [], 4)
    shocked = project_months(
        steady_history, steady_transactions, [ScenarioModifier(one_time_expense=2000, start_month=2)], 4
    )

    extra = [after.essential_spending - before.essential_spending for before, after in zip(plain, shocked)]
    assert extra == pytest.approx([0, 2000, 0, 0])


def test_extra_debt_payment_is_essential(steady_history, steady_transactions):
    projected = project_months(steady_history, steady_transactions, [PRESETS["preset_3"]], 2)

    for month in projected:
        assert month.debt_payments == pytest.approx(550)
        assert month.essential_spending == pytest.approx(2600)
        assert month.essential_spending + month.discretionary_spending == month.total_spending


def test_empty_history_uses_anchor_month():
    with pytest.warns(UserWarning):
        result = simulate([], [], [], months_forward=3, anchor_month="2024-12")

    assert [m.month for m in result.projected_months] == ["2025-01", "2025-02", "2025-03"]
    assert all(m.total_deposits == 0 for m in result.projected_months)


def test_extra_savings_improves_projection(steady_history, steady_transactions):
    plain = simulate(steady_history, steady_transactions, [PRESETS["preset_0"]])
    saver = simulate(steady_history, steady_transactions, [PRESETS["preset_1"]])

    assert saver.projected_scores.growth_momentum >= plain.projected_scores.growth_momentum
    assert saver.active_modifiers == ["+$200/month to savings"]
    assert saver.score_deltas["overall"] == pytest.approx(
        saver.projected_scores.overall - saver.current_scores.overall, abs=0.01
    )


def test_metrics_for_steady_saver(steady_history, steady_transactions):
    result = simulate(steady_history, steady_transactions, [], months_forward=12)
    metrics = result.metrics

    saved = sum(m.savings_transfers for m in steady_history)
    assert metrics.current_net_worth == pytest.approx(steady_history[-1].end_balance + saved, abs=0.01)
    assert metrics.total_saved_or_lost == pytest.approx(metrics.net_worth_change, abs=0.05)
    assert metrics.projected_net_worth > metrics.current_net_worth
    assert metrics.overdraft_probability == 0
    assert 0 <= metrics.loan_approval_probability <= 100


def test_list_presets_is_a_copy():
    presets = list_presets()
    presets.pop("preset_0")

    assert len(list_presets()) == 8
    assert "preset_0" in PRESETS


@pytest.mark.parametrize(
    "kwargs",
    [
        {"start_month": 0},
        {"extra_monthly_savings": -10},
        {"income_change_percent": -150},
        {"subscriptions_cancelled": -1},
    ],
)
def test_modifier_validation(kwargs):
    with pytest.raises(ValidationError):
        ScenarioModifier(**kwargs)


def test_extra_savings_count_toward_net_worth(steady_history, steady_transactions):
    """Money moved into savings is kept, not lost"""
    plain = simulate(steady_history, steady_transactions, [])
    saver = simulate(steady_history, steady_transactions, [ScenarioModifier(extra_monthly_savings=100)])

    assert saver.metrics.projected_net_worth == pytest.approx(plain.metrics.projected_net_worth, abs=0.01)
    assert saver.metrics.total_saved_or_lost == pytest.approx(plain.metrics.total_saved_or_lost, abs=0.01)
    assert saver.projected_months[-1].end_balance < plain.projected_months[-1].end_balance


def test_savings_preset_raises_net_worth(steady_history, steady_transactions):
    plain = simulate(steady_history, steady_transactions, [PRESETS["preset_0"]])
    saver = simulate(steady_history, steady_transactions, [PRESETS["preset_1"]])

    assert saver.metrics.projected_net_worth == pytest.approx(plain.metrics.projected_net_worth + 2400, abs=0.01)
    assert saver.metrics.total_saved_or_lost > plain.metrics.total_saved_or_lost


def test_unlabeled_modifiers_get_a_name(steady_history, steady_transactions):
    result = simulate(
        steady_history,
        steady_transactions,
        [ScenarioModifier(extra_monthly_savings=100), PRESETS["preset_2"]],
        months_forward=3,
    )

    assert result.active_modifiers == ["Modifier 1", "Cancel two subscriptions"]
