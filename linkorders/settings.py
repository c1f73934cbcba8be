from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # database_url: str = "postgresql+psycopg://linkorders@/linkorders?host=/var/run/postgresql"
    database_url: str = ""
    db_auto_create_tables: bool = False

    # 인증 (Bearer JWT)
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24

    # 정산 / 가격
    default_commission_percent: float = 30.0  # 수수료 설정이 없을 때 플랫폼 기본 수수료율
    service_fee_cents: int = 7900  # 라인아이템당 서비스 수수료 (센트)

    # 알림 (이메일 발송은 외부 서비스에 위임)
    notification_webhook_url: str = ""  # 비어 있으면 알림은 pending 상태로 남습니다
    notification_timeout_seconds: float = 10.0
    app_base_url: str = "http://localhost:3000"

    @field_validator("database_url")
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        if v and not v.startswith("postgresql"):
            raise ValueError("DB URL은 'postgresql'로 시작해야 합니다.")
        return v

    @field_validator("notification_webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("URL은 'http://' 또는 'https://'로 시작해야 합니다.")
        return v

    @field_validator("default_commission_percent")
    @classmethod
    def validate_commission(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError("수수료율은 0에서 100 사이여야 합니다.")
        return v

    @field_validator("jwt_expiry_hours")
    @classmethod
    def validate_expiry(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("토큰 만료 시간은 0보다 커야 합니다.")
        return v

    @field_validator("notification_timeout_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("대기 시간은 0 이상이어야 합니다.")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)


settings = Settings()
