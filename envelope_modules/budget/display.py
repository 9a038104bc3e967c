"""
Plain-text rendering of budget views.

Pure functions over ``BudgetOverview``; amounts are written with the
configured currency symbol.
"""

from collections.abc import Mapping
from uuid import UUID

from envelope_kernel.domain.values import Money
from envelope_modules.budget.models import BudgetOverview

WIDTH = 72
AMOUNT_WIDTH = 14
_NAME_WIDTH = WIDTH - 3 * AMOUNT_WIDTH


def _amount(value: Money, symbol: str) -> str:
    return f"{value.format(symbol):>{AMOUNT_WIDTH}}"


def _row(label: str, budgeted: str, activity: str, available: str) -> str:
    if len(label) > _NAME_WIDTH - 1:
        label = label[: _NAME_WIDTH - 2] + "~"
    return f"{label:<{_NAME_WIDTH}}{budgeted}{activity}{available}"


def render_overview(
    overview: BudgetOverview,
    category_names: Mapping[UUID, str],
    symbol: str = "$",
) -> str:
    """
    One line per category, then totals and Available to Budget.  Overspent
    categories are marked with ``!``.
    """
    lines = [
        f"Budget {overview.period.format()}".center(WIDTH),
        "=" * WIDTH,
        _row(
            "Category",
            f"{'Budgeted':>{AMOUNT_WIDTH}}",
            f"{'Activity':>{AMOUNT_WIDTH}}",
            f"{'Available':>{AMOUNT_WIDTH}}",
        ),
        "-" * WIDTH,
    ]
    for summary in overview.categories:
        name = category_names.get(summary.category_id, str(summary.category_id))
        if summary.overspent:
            name = f"! {name}"
        lines.append(
            _row(
                name,
                _amount(summary.budgeted, symbol),
                _amount(summary.activity, symbol),
                _amount(summary.available, symbol),
            )
        )
    lines.append("-" * WIDTH)
    lines.append(
        _row(
            "Total",
            _amount(overview.total_budgeted, symbol),
            _amount(overview.total_activity, symbol),
            _amount(overview.total_available, symbol),
        )
    )
    lines.append("")
    lines.append(f"Available to Budget: {overview.available_to_budget.format(symbol)}")
    if overview.expected_income is not None:
        lines.append(f"Expected income: {overview.expected_income.format(symbol)}")
    return "\n".join(lines)
