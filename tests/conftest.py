"""Pytest configuration and fixtures for customops tests."""

from datetime import date

import pytest

from customops.gateway import Gateway, InMemoryTransport
from customops.notify import RecordingNotifier

REFERENCE_DATE = date(2024, 6, 1)


@pytest.fixture
def transport():
    """In-memory transport with no records."""
    return InMemoryTransport()


@pytest.fixture
def gateway(transport):
    """Gateway over the in-memory transport."""
    return Gateway(transport)


@pytest.fixture
def notifier():
    """Notifier that records every message."""
    return RecordingNotifier()


@pytest.fixture
def reference_date():
    """Fixed "today" for date-dependent filters and metrics."""
    return REFERENCE_DATE


@pytest.fixture
def clients():
    """Ten clients covering every segmentation criterion."""
    return [
        {"id": "c1", "first_name": "Ada", "last_name": "Lovelace", "plan_type": "medicare_advantage",
         "premium": 150, "sentiment_trend": "declining", "status": "active",
         "churn_risk_level": "high", "last_contact_date": "2024-01-15", "satisfaction_score": 4},
        {"id": "c2", "first_name": "Alan", "last_name": "Turing", "plan_type": "medigap",
         "premium": 99.99, "sentiment_trend": "declining", "status": "active",
         "churn_risk_level": "medium", "last_contact_date": "2024-05-20", "satisfaction_score": 6},
        {"id": "c3", "first_name": "Grace", "last_name": "Hopper", "plan_type": "medicare_advantage",
         "premium": 100, "sentiment_trend": "declining", "status": "active",
         "churn_risk_level": "high", "last_contact_date": None, "satisfaction_score": 3},
        {"id": "c4", "first_name": "Edsger", "last_name": "Dijkstra", "plan_type": "part_d",
         "premium": 500, "sentiment_trend": "declining", "status": "inactive",
         "lifecycle_stage": "at_risk", "churn_risk_level": "critical",
         "last_contact_date": "2023-11-01T10:00:00Z", "satisfaction_score": 2},
        {"id": "c5", "first_name": "Barbara", "last_name": "Liskov", "plan_type": "medigap",
         "premium": 500.01, "sentiment_trend": "declining", "status": "active",
         "churn_risk_level": "low", "last_contact_date": "2024-05-30", "satisfaction_score": 9},
        {"id": "c6", "first_name": "Donald", "last_name": "Knuth", "plan_type": "medicare_advantage",
         "premium": 250, "sentiment_trend": "stable", "status": "active",
         "churn_risk_level": "low", "last_contact_date": "2024-05-01", "satisfaction_score": 8},
        {"id": "c7", "first_name": "Margaret", "last_name": "Hamilton", "plan_type": "part_d",
         "premium": 300, "sentiment_trend": "improving", "status": "prospect",
         "churn_risk_level": "low", "last_contact_date": "2024-02-10", "satisfaction_score": 7},
        {"id": "c8", "first_name": "John", "last_name": "Backus", "plan_type": "medigap",
         "premium": None, "sentiment_trend": "declining", "status": "active",
         "churn_risk_level": "medium", "last_contact_date": "2024-03-03", "satisfaction_score": 5},
        {"id": "c9", "first_name": "Frances", "last_name": "Allen", "plan_type": "medicare_advantage",
         "premium": 420, "sentiment_trend": "declining", "status": "churned",
         "lifecycle_stage": "win_back", "churn_risk_level": "critical",
         "last_contact_date": "2023-08-19", "satisfaction_score": 1},
        {"id": "c10", "first_name": "Ken", "last_name": "Thompson", "plan_type": "part_d",
         "premium": 180, "sentiment_trend": None, "status": "lead",
         "churn_risk_level": "medium", "last_contact_date": "2024-04-12", "satisfaction_score": 6},
    ]


@pytest.fixture
def carriers():
    return [
        {"id": "k1", "name": "Acme Health", "code": "ACM", "status": "active"},
        {"id": "k2", "name": "Blue Shield", "code": "BSH", "status": "active"},
        {"id": "k3", "name": "Cascade Life", "code": "CSC", "status": "inactive"},
    ]


@pytest.fixture
def contracts():
    """Contracts relative to 2024-06-01."""
    return [
        # Acme: active, nothing expiring
        {"id": "t1", "carrier_id": "k1", "contract_status": "active", "expiration_date": "2025-06-01"},
        # Blue Shield: active, one expiring in 30 days
        {"id": "t2", "carrier_id": "k2", "contract_status": "active", "expiration_date": "2024-07-01"},
        {"id": "t3", "carrier_id": "k2", "contract_status": "active", "expiration_date": "2024-12-31"},
        # Cascade: pending only, expiring in 90 days and already expired
        {"id": "t4", "carrier_id": "k3", "contract_status": "pending", "expiration_date": "2024-08-30"},
        {"id": "t5", "carrier_id": "k3", "contract_status": "expired", "expiration_date": "2024-05-01"},
    ]


@pytest.fixture
def appointments():
    return [
        *({"id": f"a{i}", "carrier_name": "Acme Health", "status": "active"} for i in range(6)),
        {"id": "b1", "carrier_name": "Blue Shield", "status": "active"},
        {"id": "b2", "carrier_name": "Blue Shield", "status": "terminated"},
    ]
