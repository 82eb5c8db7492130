import pytest
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.db.database import Base, get_db
from app.core.config import settings
from app.core.security import get_current_user
from app.models import OptionType, OptionValue, Product

RED, BLUE = 1, 2
SMALL, MEDIUM = 10, 11


@pytest.fixture
async def test_engine():
    """Create a fresh in-memory database for every test."""
    engine = create_async_engine(
        settings.TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker):
    """Create test database session."""
    async with session_maker() as session:
        yield session


@pytest.fixture
async def catalog(db_session):
    """
    Product 100 (base price 50.00) with two option types:
    Color: Red (+0), Blue (+5); Size: S (+0), M (+2).
    """
    product = Product(
        product_id=100,
        product_name_en="T-Shirt",
        product_name_ar="قميص",
        sku="TSHIRT",
        base_price=Decimal("50.00"),
        stock_quantity=8,
    )
    color = OptionType(
        option_type_id=1,
        type_name_en="Color",
        display_order=1,
        display_type="swatch",
        values=[
            OptionValue(option_value_id=RED, value_name_en="Red", value_name_ar="أحمر",
                        additional_price=Decimal("0"), hex_code="#FF0000", display_order=1),
            OptionValue(option_value_id=BLUE, value_name_en="Blue",
                        additional_price=Decimal("5.00"), hex_code="#0000FF", display_order=2),
        ],
    )
    size = OptionType(
        option_type_id=2,
        type_name_en="Size",
        display_order=2,
        values=[
            OptionValue(option_value_id=SMALL, value_name_en="S",
                        additional_price=Decimal("0"), display_order=1),
            OptionValue(option_value_id=MEDIUM, value_name_en="M",
                        additional_price=Decimal("2.00"), display_order=2),
        ],
    )
    db_session.add_all([product, color, size])
    await db_session.commit()
    return {"product": product, "color": color, "size": size}


@pytest.fixture
async def client(session_maker):
    """API client authenticated as a test user."""
    from main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: "test-user"

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def anonymous_client(session_maker):
    """API client without credentials."""
    from main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
