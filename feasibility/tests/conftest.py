import copy

import pytest

from feasibility.engine.business import BusinessClassifier
from feasibility.engine.location import LocationClassifier
from feasibility.pipeline.sanitizer import sanitize_discovery

DISCOVERY_PAYLOAD = {
    "factors": [
        {"name": "Office Worker Demand", "weight": 0.25, "score": 80, "reasoning": "Dense tech offices nearby", "isLocationSpecific": True},
        {"name": "Delivery Platform Reach", "weight": 0.20, "score": 75, "reasoning": "Swiggy and Zomato coverage", "isLocationSpecific": True},
        {"name": "Kitchen Rent", "weight": 0.15, "score": 70, "reasoning": "Back-lane units are affordable", "isLocationSpecific": True},
        {"name": "Menu Differentiation", "weight": 0.15, "score": 72, "reasoning": "Home-style meals are underserved", "isLocationSpecific": False},
        {"name": "FSSAI Licensing", "weight": 0.10, "score": 68, "reasoning": "Straightforward registration", "isLocationSpecific": False},
        {"name": "Repeat Ordering", "weight": 0.15, "score": 78, "reasoning": "Subscription tiffins drive retention", "isLocationSpecific": False},
    ],
    "marketData": [
        {"metric": "Kitchen rent", "minValue": 40000, "maxValue": 70000, "estimatedValue": 55000, "unit": "INR/month", "source": "Local listings", "confidence": "medium"},
        {"metric": "Average order value", "minValue": 150, "maxValue": 250, "estimatedValue": 200, "unit": "INR", "source": "Platform menus", "confidence": "high"},
    ],
    "estimatedSetupCostMin": 400000,
    "estimatedSetupCostMax": 800000,
    "estimatedMonthlyRevenueMin": 250000,
    "estimatedMonthlyRevenueMax": 350000,
    "estimatedMonthlyExpensesMin": 150000,
    "estimatedMonthlyExpensesMax": 250000,
    "avgProfitMargin": 0.2,
    "directCompetitors": 12,
    "indirectCompetitors": 30,
    "marketSize": "INR 40 crore local meal delivery market",
    "marketGrowth": "18% CAGR",
}

EXPLANATION_PAYLOAD = {
    "summary": "A tiffin-focused cloud kitchen in Koramangala is well placed to serve office demand.",
    "marketExplanation": "Koramangala has a dense office population that orders lunch daily.",
    "competitionExplanation": "A dozen cloud kitchens compete, few offer home-style subscriptions.",
    "financialExplanation": "Setup costs are covered by the budget with room for marketing.",
    "competitiveAdvantage": "Weekly subscription plans with rotating regional menus.",
    "threats": ["Platform commission increases", "New entrants copying the menu"],
    "opportunities": ["Corporate lunch tie-ups", "Weekend family packs"],
    "risks": [
        {"risk": "Commission hikes", "severity": "medium", "mitigation": "Build direct ordering"},
        {"risk": "Staff churn", "severity": "low", "mitigation": "Train two backup cooks"},
        {"risk": "Food safety incident", "severity": "high", "mitigation": "Daily hygiene audits"},
    ],
    "recommendations": ["Start with a lunch-only menu", "Launch subscriptions in month two", "Track repeat rate weekly"],
    "roadmapPhases": [
        {"phase": "Phase 1: Setup", "duration": "0-2 months", "tasks": ["Lease kitchen", "FSSAI licence"], "milestones": ["Kitchen ready"]},
        {"phase": "Phase 2: Launch", "duration": "2-4 months", "tasks": ["List on platforms"], "milestones": ["100 orders/day"]},
        {"phase": "Phase 3: Scale", "duration": "4-12 months", "tasks": ["Add dinner"], "milestones": ["Break-even"]},
    ],
    "roadmapExplanation": "Phased to keep fixed costs low until demand is proven.",
    "expertInsights": "Lunch subscriptions are the most defensible part of the plan.",
}


@pytest.fixture
def discovery_payload():
    return copy.deepcopy(DISCOVERY_PAYLOAD)


@pytest.fixture
def explanation_payload():
    return copy.deepcopy(EXPLANATION_PAYLOAD)


@pytest.fixture
def discovery(discovery_payload):
    return sanitize_discovery(discovery_payload)


@pytest.fixture
def cloud_kitchen():
    return BusinessClassifier().classify("Cloud kitchen serving tiffin meals to office workers")


@pytest.fixture
def bangalore():
    return LocationClassifier().classify("Koramangala, Bangalore")
