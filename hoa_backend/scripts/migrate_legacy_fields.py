# scripts/migrate_legacy_fields.py
"""
레거시 필드명을 현재 스키마로 옮기는 일회성 마이그레이션 스크립트.

Usage:
    python scripts/migrate_legacy_fields.py                       # dry-run (기본값)
    python scripts/migrate_legacy_fields.py --commit
    python scripts/migrate_legacy_fields.py --commit -c contributions -c expenses
"""
import sys
from pathlib import Path

import click

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app
from app.services.migration_service import LEGACY_FIELD_MAP

MIGRATABLE_COLLECTIONS = tuple(name for name in LEGACY_FIELD_MAP if name != 'post_children')


@click.command()
@click.option('--commit', is_flag=True, default=False, help='변경 사항을 실제로 기록합니다. (기본값: dry-run)')
@click.option('--collection', '-c', 'collections', multiple=True,
              type=click.Choice(MIGRATABLE_COLLECTIONS), help='대상 컬렉션 (기본값: 전체)')
@click.option('--env', 'config_name', default=None, help='설정 이름 (development/production)')
def main(commit, collections, config_name):
    app = create_app(config_name)
    with app.app_context():
        migration_service = app.services['migration']
        total = 0
        for name in collections or MIGRATABLE_COLLECTIONS:
            report = migration_service.migrate_collection(name, dry_run=not commit)
            click.echo(f"{report.collection}: scanned={report.scanned} migrated={report.migrated}")
            total += report.migrated

    mode = 'committed' if commit else 'dry-run'
    click.echo(f"[{mode}] 총 {total}건")


if __name__ == '__main__':
    main()
