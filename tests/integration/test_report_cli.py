"""Integration tests for the billing summary CLI."""

import asyncio
import csv
from datetime import date
from decimal import Decimal

import pytest

from messledger.cli import report
from messledger.models.charge import ChargeCategory
from messledger.services.member_service import MemberService
from messledger.services.record_store import RecordKind, RecordStore

pytestmark = pytest.mark.integration


@pytest.fixture
def database(tmp_path, monkeypatch):
    """File database with two members; the CLI opens it through DATABASE_URL."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setattr(report, "setup_server_logging", lambda *args, **kwargs: None)

    async def seed():
        store = RecordStore.from_url(url)
        await store.create_schema()
        directory = MemberService(store)
        silva = await directory.register_member("O-1001", "K. Silva", rank="Lt")
        await directory.register_member("O-1002", "A. Perera", rank="Capt")
        await store.create(
            RecordKind.CHARGE,
            {
                "member_id": silva.id,
                "charge_date": date(2025, 1, 10),
                "category": ChargeCategory.MESSING,
                "items": [{"label": "Lunch", "unit_cost": Decimal("450"), "quantity": 1}],
                "total_cost": Decimal("450"),
            },
        )
        await store.close()

    asyncio.run(seed())
    return url


class TestReportCli:
    def test_writes_csv_to_directory(self, database, tmp_path):
        out_dir = tmp_path / "reports"
        out_dir.mkdir()

        exit_code = report.main(["--output", str(out_dir), "--sort", "outstanding", "--desc"])

        assert exit_code == 0
        written = out_dir / f"mess_billing_summary_{date.today().isoformat()}.csv"
        lines = list(csv.reader(written.open(encoding="utf-8")))
        assert [line[0] for line in lines[1:]] == ["O-1001", "O-1002"]
        assert lines[1][6] == "450.00"

    def test_search_and_explicit_file(self, database, tmp_path):
        target = tmp_path / "perera.xlsx"

        exit_code = report.main(["--output", str(target), "--format", "xlsx", "--search", "perera"])

        assert exit_code == 0
        assert target.exists()

    def test_bad_sort_column_fails(self, database, tmp_path):
        exit_code = report.main(["--output", str(tmp_path) + "/", "--sort", "salary"])

        assert exit_code == 1
        assert not list(tmp_path.glob("mess_billing_summary_*"))

    def test_bad_date_range_fails(self, database, tmp_path):
        exit_code = report.main(["--start", "2025-02-01", "--end", "2025-01-01"])

        assert exit_code == 1


class TestResolveOutputPath:
    def test_directory_gets_default_name(self, tmp_path):
        assert report.resolve_output_path(str(tmp_path), "x.csv") == tmp_path / "x.csv"

    def test_trailing_slash(self, tmp_path):
        assert report.resolve_output_path(str(tmp_path / "new") + "/", "x.csv") == tmp_path / "new" / "x.csv"

    def test_file_path_kept(self, tmp_path):
        assert report.resolve_output_path(str(tmp_path / "out.csv"), "x.csv") == tmp_path / "out.csv"
