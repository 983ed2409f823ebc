"""
Shared fixtures for the inventory intelligence tests.
"""
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from inventory_intel.api import create_app
from inventory_intel.config import PolicyConfig
from inventory_intel.grades.history import Base


@pytest.fixture
def policy_config():
    """Default policy with fewer Monte Carlo trials."""
    return PolicyConfig(simulation_trials=2000)


@pytest.fixture(scope="function")
def test_client(policy_config):
    """FastAPI test client."""
    return TestClient(create_app(policy_config))


@pytest.fixture
def db_session():
    """In-memory SQLite session with the grade history table."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def pareto_items():
    """Three items whose values split exactly on the 80/95 cut points."""
    return [
        {"id": "A", "name": "Widget", "value": 8000, "demand_history": [100, 102, 98, 101, 99, 100]},
        {"id": "B", "name": "Gadget", "value": 1500, "demand_history": [10, 30, 15, 25, 5, 35]},
        {"id": "C", "name": "Gizmo", "value": 500, "demand_history": [0, 20, 0, 20]},
    ]


@pytest.fixture
def stable_history():
    """Twelve months of stable demand around 100."""
    return [100, 102, 98, 101, 99, 100, 103, 97, 100, 101, 99, 100]


@pytest.fixture
def seasonal_history():
    """Two years of a strong yearly pattern."""
    year = [50, 60, 80, 120, 150, 160, 140, 110, 90, 70, 60, 55]
    return year + year


@pytest.fixture
def sample_skus():
    """SKUs for reorder tests."""
    return [
        {
            "product_id": "P-001",
            "sku": "SKU-001",
            "avg_daily_sales": 10.0,
            "current_stock": 20.0,
            "abc_grade": "A",
            "xyz_grade": "X",
            "moq": 50,
            "lead_time_days": 7,
            "cost_price": 10.0,
        },
        {
            "product_id": "P-002",
            "sku": "SKU-002",
            "avg_daily_sales": 5.0,
            "current_stock": 500.0,
            "abc_grade": "B",
            "xyz_grade": "Y",
            "moq": 25,
            "lead_time_days": 5,
            "cost_price": 25.0,
        },
        {
            "product_id": "P-003",
            "sku": "SKU-003",
            "avg_daily_sales": 2.0,
            "current_stock": None,
            "abc_grade": "C",
            "xyz_grade": "Z",
            "moq": 10,
            "lead_time_days": 10,
            "cost_price": 4.0,
        },
    ]


@pytest.fixture
def grade_periods():
    return date(2026, 1, 1), date(2026, 2, 1)
