"""
CLI エントリーポイント。楽天ショップ URL / CSV / 再開 / 強制中断を処理。
"""
from __future__ import annotations

import argparse
import signal
import sys

from dotenv import load_dotenv

load_dotenv()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="IP infringement patrol for Rakuten shops and catalog CSVs")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--shop-url", type=str, metavar="URL", help="Rakuten shop URL to patrol")
    target.add_argument("--csv", type=str, nargs="+", metavar="FILE", help="Catalog CSV file(s) to check")
    target.add_argument("--resume", type=str, metavar="SESSION_ID", help="Resume a paused/aborted shop scan")
    target.add_argument("--force-stop", type=str, metavar="SESSION_ID", help="Mark a stuck session as aborted")
    target.add_argument("--init-config", action="store_true", help="Write the default config.yaml (or --config PATH) and exit")
    parser.add_argument("--target", type=int, metavar="N", help="Number of items to check (shop scan)")
    parser.add_argument("--high-speed", action="store_true", default=None, help="Batches of 15 with no delay")
    parser.add_argument("--encoding", type=str, help="CSV text encoding (default: cp932)")
    parser.add_argument("--column", type=str, help="CSV column name or index holding the product name")
    parser.add_argument("--export", type=str, metavar="PATH", help="Write a CSV report after the scan")
    parser.add_argument("--filter", type=str, choices=["all", "critical", "medium", "low"], help="Report filter")
    parser.add_argument("--config", type=str, metavar="PATH", help="config.yaml path")
    parser.add_argument("--db", type=str, metavar="PATH", help="SQLite session store path")
    parser.add_argument("--dry-run", action="store_true", help="No API/DB, log steps only")
    args = parser.parse_args(argv)
    if args.target is not None and args.target < 1:
        parser.error(f"--target must be >= 1 (got {args.target})")

    from ippatrol.errors import ConfigError
    from ippatrol.job import force_stop, run_scan
    from ippatrol.job.cancel import CancellationToken
    from ippatrol.job.models import SessionStatus
    from ippatrol.job.runner import build_params
    from ippatrol.util.log import get_logger, setup_logging

    setup_logging()
    logger = get_logger("main")

    if args.init_config:
        from ippatrol.config import default_config, save_config

        save_config(default_config(), args.config)
        logger.info("既定の設定を書き出しました: %s", args.config or "config.yaml")
        return
    if args.force_stop:
        sys.exit(0 if force_stop(args.force_stop, db_path=args.db) else 1)
    if not (args.shop_url or args.csv or args.resume):
        parser.print_help()
        sys.exit(0)

    params = build_params(
        args.config,
        high_speed=args.high_speed,
        encoding=args.encoding,
        name_column=args.column,
        report_filter=args.filter,
    )
    token = CancellationToken()
    # Ctrl+C は実行中のバッチを終えてから一時停止する
    signal.signal(signal.SIGINT, lambda *_: token.cancel())

    try:
        session = run_scan(
            shop_url=args.shop_url,
            csv_paths=args.csv,
            resume_session_id=args.resume,
            params=params,
            target_count=args.target,
            export_path=args.export,
            dry_run=args.dry_run,
            db_path=args.db,
            token=token,
        )
    except (ConfigError, LookupError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(1)
    if session is None:
        return
    logger.info("session_id=%s status=%s", session.session_id, session.status.value)
    if session.status == SessionStatus.ABORTED:
        sys.exit(1)


if __name__ == "__main__":
    main()
