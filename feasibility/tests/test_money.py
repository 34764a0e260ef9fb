import pytest

from feasibility.engine.money import DEFAULT_BUDGET, BudgetAmount, parse_budget


@pytest.mark.parametrize("raw,expected", [
    ("15 lakhs", 1_500_000),
    ("15 lakh", 1_500_000),
    ("2 lac", 200_000),
    ("2.5 Cr", 25_000_000),
    ("1 crore", 10_000_000),
    ("50k", 50_000),
    ("1.5L", 150_000),
    ("₹ 3,00,000", 300_000),
    ("Rs. 50,000", 50_000),
    ("INR 5 lakh", 500_000),
    ("$20000", 20_000),
])
def test_parse_budget_shorthand(raw, expected):
    assert parse_budget(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "   ", "Not specified", "a lot", "flexible"])
def test_parse_budget_defaults(raw):
    assert parse_budget(raw) == DEFAULT_BUDGET


def test_parse_budget_uses_first_number():
    assert parse_budget("between 10 and 20 lakh") == pytest.approx(1_000_000)


def test_parse_budget_never_raises_on_non_string():
    assert parse_budget(12345) == DEFAULT_BUDGET


def test_budget_amount_records_whether_specified():
    given = BudgetAmount.from_raw("15 lakhs")
    assert given.specified
    assert given.amount == pytest.approx(1_500_000)

    missing = BudgetAmount.from_raw("Not specified")
    assert not missing.specified
    assert missing.amount == DEFAULT_BUDGET

    vague = BudgetAmount.from_raw("whatever it takes")
    assert not vague.specified
    assert vague.amount == DEFAULT_BUDGET
