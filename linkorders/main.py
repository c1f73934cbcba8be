from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.orm import Session

from linkorders.db import engine, get_session
from linkorders.models import Base
from linkorders.settings import settings
from linkorders.api.endpoints import line_items, orders, publisher_orders, submissions

app = FastAPI(title="linkorders")

app.include_router(submissions.router, prefix="/api", tags=["Submissions"])
app.include_router(orders.router, prefix="/api", tags=["Orders"])
app.include_router(line_items.router, prefix="/api", tags=["Line Items"])
app.include_router(publisher_orders.router, prefix="/api", tags=["Publisher Orders"])


@app.on_event("startup")
def on_startup() -> None:
    # 로컬 개발용. 운영 스키마는 Alembic으로 관리합니다
    if settings.db_auto_create_tables:
        Base.metadata.create_all(bind=engine)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/db/ping")
def db_ping(session: Session = Depends(get_session)) -> dict:
    value = session.execute(text("SELECT 1")).scalar_one()
    return {"ok": value == 1}
