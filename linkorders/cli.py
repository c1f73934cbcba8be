import argparse
import logging
import sys
import uuid

from linkorders.auth import create_access_token
from linkorders.db import SessionLocal, engine
from linkorders.models import Base
from linkorders.services.inclusion import backfill_inclusion_status

# 로그 설정
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger("linkorders.cli")


def run_init_db(args) -> int:
    Base.metadata.create_all(bind=engine)
    logger.info("[CLI] 테이블 생성 완료")
    return 0


def run_issue_token(args) -> int:
    try:
        user_id = uuid.UUID(args.user_id)
    except ValueError:
        logger.error(f"[CLI] 잘못된 user id: {args.user_id}")
        return 1
    print(create_access_token(user_id, args.user_type, email=args.email))
    return 0


def run_backfill_inclusion(args) -> int:
    total = 0
    with SessionLocal() as session:
        while True:
            with session.begin():
                result = backfill_inclusion_status(session, limit=args.batch_size)
            total += result["updated"]
            if args.once or result["scanned"] < args.batch_size:
                break
    logger.info(f"[CLI] inclusion backfill 총 {total}건")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="linkorders 운영 CLI")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("init-db", help="모델 기준으로 테이블 생성")

    token_parser = subparsers.add_parser("issue-token", help="Bearer 토큰 발급")
    token_parser.add_argument("user_id", help="사용자 UUID")
    token_parser.add_argument("--user-type", choices=["internal", "account", "publisher"], default="internal")
    token_parser.add_argument("--email", default="")

    backfill_parser = subparsers.add_parser("backfill-inclusion", help="selection_pool → inclusion_status 보정")
    backfill_parser.add_argument("--batch-size", type=int, default=1000)
    backfill_parser.add_argument("--once", action="store_true", help="한 배치만 처리")

    args = parser.parse_args(argv)

    if args.command == "init-db":
        return run_init_db(args)
    if args.command == "issue-token":
        return run_issue_token(args)
    if args.command == "backfill-inclusion":
        return run_backfill_inclusion(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
