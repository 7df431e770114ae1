"""Tests for the reconciliation command-line interface."""

import asyncio
import json
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from membership_sdk.database import (
    Base,
    MembershipStatus,
    create_async_engine,
    get_async_session_factory,
    FamilyRepository,
    MemberRepository,
    MembershipRepository,
    PaymentRepository,
    SeasonRepository,
)
from membership_sdk.reconciliation import cli


async def _seed(database_url):
    engine = create_async_engine(database_url=database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_async_session_factory(engine)() as session:
        season = await SeasonRepository(session).create(
            start_year=2025,
            end_year=2026,
            membership_amount=Decimal("100"),
            discount_percent=Decimal("20"),
        )
        family = await FamilyRepository(session).create(name="Martin")
        member_repo = MemberRepository(session)
        for first_name in ("Alice", "Bruno"):
            member = await member_repo.create(family.id, first_name, "Martin")
            await MembershipRepository(session).set_status(member.id, season.id, MembershipStatus.PENDING)
        await PaymentRepository(session).create(family.id, season.id, Decimal("100"))
        await session.commit()
        ids = (family.id, season.id)

    await engine.dispose()
    return ids


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    """Point the CLI at a seeded SQLite file."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    return url


class TestParser:
    """Tests for argument parsing."""

    def test_reconcile_arguments(self):
        """Test the reconcile subcommand parses ids, format and output."""
        args = cli.create_parser().parse_args(
            ["reconcile", "--family-id", "4", "-s", "2", "--format", "text", "-o", "out.txt"]
        )

        assert args.command == "reconcile"
        assert args.family_id == 4
        assert args.season_id == 2
        assert args.format == "text"
        assert args.output == "out.txt"

    def test_balance_arguments(self):
        """Test the balance subcommand parses ids."""
        args = cli.create_parser().parse_args(["balance", "-f", "1", "-s", "3"])

        assert args.command == "balance"
        assert (args.family_id, args.season_id) == (1, 3)

    def test_unknown_format_exits(self):
        """Test an unsupported format is an argument error."""
        with pytest.raises(SystemExit):
            cli.create_parser().parse_args(["reconcile", "-f", "1", "-s", "1", "--format", "xml"])


class TestMain:
    """Tests for main()."""

    def test_no_command_prints_help(self, capsys):
        """Test running without a command returns the usage exit code."""
        assert cli.main([]) == cli.EXIT_USAGE
        assert "reconcile" in capsys.readouterr().out

    def test_non_positive_ids(self):
        """Test non-positive ids are rejected before touching the database."""
        with patch.object(cli, "run_reconciliation_async", AsyncMock(return_value=0)) as runner:
            assert cli.main(["reconcile", "-f", "0", "-s", "1"]) == cli.EXIT_USAGE

        runner.assert_not_called()

    def test_dispatches_reconcile(self):
        """Test the reconcile command forwards its arguments."""
        with patch.object(cli, "run_reconciliation_async", AsyncMock(return_value=0)) as runner:
            assert cli.main(["reconcile", "-f", "1", "-s", "2", "--format", "text"]) == 0

        runner.assert_awaited_once_with(
            family_id=1,
            season_id=2,
            output_file=None,
            output_format="text",
        )

    def test_reconcile_end_to_end(self, database_url, capsys):
        """Test a real run prints the JSON outcome and persists statuses."""
        family_id, season_id = asyncio.run(_seed(database_url))

        code = cli.main(["reconcile", "-f", str(family_id), "-s", str(season_id)])

        assert code == cli.EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data["totals"]["due"] == "180.00"
        assert [m["status"] for m in data["members"]] == ["active", "pending"]

    def test_reconcile_to_file(self, database_url, tmp_path):
        """Test the text report can be written to a file."""
        family_id, season_id = asyncio.run(_seed(database_url))
        output = tmp_path / "report.txt"

        code = cli.main([
            "reconcile", "-f", str(family_id), "-s", str(season_id),
            "--format", "text", "--output", str(output),
        ])

        assert code == cli.EXIT_OK
        assert "FAMILY SEASON RECONCILIATION" in output.read_text()

    def test_unknown_family_is_failure(self, database_url, capsys):
        """Test domain errors map to the failure exit code with a generic message."""
        asyncio.run(_seed(database_url))

        code = cli.main(["reconcile", "-f", "999", "-s", "1"])

        assert code == cli.EXIT_FAILURE
        assert "Reconciliation failed." in capsys.readouterr().err

    def test_balance_on_fresh_database(self, database_url, capsys):
        """Test balance on an empty database fails cleanly instead of crashing."""
        code = cli.main(["balance", "-f", "1", "-s", "1"])

        assert code == cli.EXIT_FAILURE
        assert "Balance computation failed." in capsys.readouterr().err

    def test_balance(self, database_url, capsys):
        """Test the balance command prints the family balance."""
        family_id, season_id = asyncio.run(_seed(database_url))

        code = cli.main(["balance", "-f", str(family_id), "-s", str(season_id)])

        assert code == cli.EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data["family_name"] == "Martin"
        assert data["payments_count"] == 1
        assert data["is_fully_paid"] is False
