"""Pytest configuration and fixtures."""

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import JSON, Uuid, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from linkorders.auth import create_access_token
from linkorders.db import get_session
from linkorders.main import app
from linkorders.models import (
    Account,
    Base,
    Client,
    Order,
    OrderGroup,
    OrderLineItem,
    OrderSiteSubmission,
    Publisher,
)


# 테스트용 메모리 SQLite 엔진 (TestClient 스레드와 연결 하나를 공유)
TEST_DATABASE_URL = "sqlite://"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,  # 테스트 로그 줄이기
)


# pysqlite가 SAVEPOINT를 다룰 수 있도록 트랜잭션 시작을 직접 제어
@event.listens_for(test_engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(test_engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestSessionLocal = sessionmaker(
    bind=test_engine,
    autoflush=False,
    expire_on_commit=False,
)


def _patch_jsonb_to_json(base):
    """
    SQLite에서 JSONB를 JSON으로 변경하여 컴파일 오류 방지.
    테스트용으로만 사용.
    """
    from sqlalchemy.dialects.postgresql import JSONB

    for table in base.metadata.sorted_tables:
        for column in table.columns:
            if isinstance(column.type, JSONB):
                column.type = JSON()


def _patch_uuid_to_generic(base):
    """
    SQLite에서 postgres UUID 컬럼은 NUMERIC affinity가 되어 숫자만 있는 hex가 정수로 읽힙니다.
    generic Uuid(CHAR(32))로 바꿔 문자열로 저장합니다.
    """
    from sqlalchemy.dialects.postgresql import UUID

    for table in base.metadata.sorted_tables:
        for column in table.columns:
            if isinstance(column.type, UUID):
                column.type = Uuid(as_uuid=column.type.as_uuid)


@pytest.fixture(scope="function")
def test_session() -> Session:
    """
    테스트용 데이터베이스 세션 fixture.
    각 테스트마다 새로운 메모리 DB 생성.
    """
    _patch_jsonb_to_json(Base)
    _patch_uuid_to_generic(Base)
    Base.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def test_session_factory(test_session: Session):
    """백그라운드 작업용 세션 팩토리 (test_session을 commit한 뒤 사용)"""
    return TestSessionLocal


@pytest.fixture(scope="function")
def client(test_session: Session):
    """
    get_session을 테스트 세션의 savepoint로 바꿔 끼운 TestClient.
    요청이 실패하면 savepoint만 롤백되므로 테스트에서 같은 세션으로 결과를 확인할 수 있습니다.
    """
    def _override_get_session():
        with test_session.begin_nested():
            yield test_session

    app.dependency_overrides[get_session] = _override_get_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_session, None)


@pytest.fixture
def auth_headers():
    """Bearer 헤더 생성기"""
    def _make(user_id: uuid.UUID, user_type: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id, user_type)}"}
    return _make


@pytest.fixture
def internal_user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def account(test_session: Session) -> Account:
    row = Account(email="owner@example.com", name="Owner")
    test_session.add(row)
    test_session.flush()
    return row


@pytest.fixture
def other_account(test_session: Session) -> Account:
    row = Account(email="stranger@example.com", name="Stranger")
    test_session.add(row)
    test_session.flush()
    return row


@pytest.fixture
def publisher(test_session: Session) -> Publisher:
    row = Publisher(email="pub@example.com", company_name="Pub Co")
    test_session.add(row)
    test_session.flush()
    return row


@pytest.fixture
def client_row(test_session: Session, account: Account) -> Client:
    row = Client(account_id=account.id, name="Acme", website="https://acme.example.com")
    test_session.add(row)
    test_session.flush()
    return row


@pytest.fixture
def order(test_session: Session, account: Account) -> Order:
    row = Order(account_id=account.id, status="client_reviewing", state="site_review")
    test_session.add(row)
    test_session.flush()
    return row


@pytest.fixture
def group(test_session: Session, order: Order, client_row: Client) -> OrderGroup:
    row = OrderGroup(order_id=order.id, client_id=client_row.id, link_count=2)
    test_session.add(row)
    test_session.flush()
    return row


@pytest.fixture
def submission(test_session: Session, group: OrderGroup) -> OrderSiteSubmission:
    row = OrderSiteSubmission(order_group_id=group.id, domain="blog.example.com", price=25000)
    test_session.add(row)
    test_session.flush()
    return row


@pytest.fixture
def line_item(test_session: Session, order: Order, client_row: Client) -> OrderLineItem:
    row = OrderLineItem(
        order_id=order.id,
        client_id=client_row.id,
        target_page_url="https://acme.example.com/pricing",
        anchor_text="acme pricing",
        status="draft",
        estimated_price=30000,
        item_metadata={},
    )
    test_session.add(row)
    test_session.flush()
    return row


@pytest.fixture
def publisher_line_item(test_session: Session, order: Order, client_row: Client, publisher: Publisher) -> OrderLineItem:
    row = OrderLineItem(
        order_id=order.id,
        client_id=client_row.id,
        target_page_url="https://acme.example.com/features",
        anchor_text="acme features",
        status="in_progress",
        assigned_domain="blog.example.com",
        publisher_id=publisher.id,
        publisher_status="accepted",
        publisher_price=10000,
        item_metadata={},
    )
    test_session.add(row)
    test_session.flush()
    return row


# 테스트 마커 정의
def pytest_configure(config):
    """Pytest 마커 등록."""
    config.addinivalue_line("markers", "unit: 단위 테스트 (DB 불필요)")
    config.addinivalue_line("markers", "integration: 통합 테스트 (실제 DB/API 필요)")
