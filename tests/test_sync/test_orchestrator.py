"""Tests for SyncOrchestrator."""

import time
from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from src.ingestion.feed_adapter import FeedResult
from src.ingestion.schemas import RemoteItem
from src.sync.config import SyncConfig
from src.sync.orchestrator import NO_ACCOUNTS_MESSAGE, start_of_local_day
from src.sync.schemas import SyncRunError, SyncStatus, SyncTrigger
from tests.factories import FakeFeedAdapter, make_account, make_remote_item, make_source


def _sources_by_account(mapping):
    async def _get(account_id, platform="bilibili"):
        outcome = mapping.get(account_id, [])
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return _get


class TestStartOfLocalDay:
    def test_is_local_midnight(self):
        ts = start_of_local_day()
        midnight = datetime.fromtimestamp(ts)

        assert (midnight.hour, midnight.minute, midnight.second) == (0, 0, 0)
        assert midnight.date() == datetime.now().date()


class TestRunSync:
    """Tests for run-level behavior."""

    @pytest.mark.asyncio
    async def test_no_accounts(self, make_orchestrator, accounts_repo):
        accounts_repo.list_with_credential.return_value = []

        report = await make_orchestrator(FakeFeedAdapter({})).run_sync()

        assert report.success is True
        assert report.results == []
        assert report.message == NO_ACCOUNTS_MESSAGE

    @pytest.mark.asyncio
    async def test_account_load_failure_is_fatal(self, make_orchestrator, accounts_repo):
        accounts_repo.list_with_credential.side_effect = OSError("connection refused")

        with pytest.raises(SyncRunError):
            await make_orchestrator(FakeFeedAdapter({})).run_sync()

        # first attempt plus two retries
        assert accounts_repo.list_with_credential.await_count == 3

    @pytest.mark.asyncio
    async def test_account_load_transient_error_recovers(self, make_orchestrator, accounts_repo):
        accounts_repo.list_with_credential.side_effect = [OSError("blip"), []]

        report = await make_orchestrator(FakeFeedAdapter({})).run_sync()

        assert report.success is True

    @pytest.mark.asyncio
    async def test_partial_failure_isolated_across_accounts(
        self, make_orchestrator, accounts_repo, sources_repo
    ):
        """Account B failing does not affect A or C."""
        accounts_repo.list_with_credential.return_value = [
            make_account("A"), make_account("B"), make_account("C"),
        ]
        sources_repo.get_active_by_account.side_effect = _sources_by_account({
            "A": [make_source("A", 1)],
            "B": ValueError("sources query broke"),
            "C": [make_source("C", 3)],
        })
        adapter = FakeFeedAdapter({
            1: FeedResult.success([make_remote_item("BV1a"), make_remote_item("BV1b")]),
            3: FeedResult.success([make_remote_item("BV3a")]),
        })

        report = await make_orchestrator(adapter).run_sync()

        assert report.success is True
        by_id = {r.account_id: r for r in report.results}
        assert [r.account_id for r in report.results] == ["A", "B", "C"]
        assert by_id["A"].new_item_count == 2
        assert by_id["A"].error is None
        assert by_id["B"].new_item_count == 0
        assert "sources query broke" in by_id["B"].error
        assert by_id["C"].new_item_count == 1
        assert by_id["C"].error is None

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(
        self, make_orchestrator, accounts_repo, sources_repo, video_repo
    ):
        accounts_repo.list_with_credential.return_value = [make_account("A")]
        sources_repo.get_active_by_account.return_value = [make_source("A", 1)]
        adapter = FakeFeedAdapter({1: FeedResult.success([make_remote_item("BV1")])})
        orchestrator = make_orchestrator(adapter)

        first = await orchestrator.run_sync()
        second = await orchestrator.run_sync()

        assert first.results[0].new_item_count == 1
        assert second.results[0].new_item_count == 0
        assert len(video_repo.rows) == 1

    @pytest.mark.asyncio
    async def test_to_dict_shape(self, make_orchestrator, accounts_repo, sources_repo):
        accounts_repo.list_with_credential.return_value = [make_account("A"), make_account("B")]
        sources_repo.get_active_by_account.side_effect = _sources_by_account({
            "A": [make_source("A", 1)],
        })
        adapter = FakeFeedAdapter({1: FeedResult.success([make_remote_item("BV1")])})

        payload = (await make_orchestrator(adapter).run_sync()).to_dict()

        assert payload["success"] is True
        assert "timestamp" in payload
        assert "message" not in payload
        assert payload["results"] == [
            {"account_id": "A", "new_item_count": 1},
            {"account_id": "B", "new_item_count": 0, "error": "no active sources"},
        ]


class TestSyncAccount:
    """Tests for per-account behavior."""

    @pytest.mark.asyncio
    async def test_only_today_items_are_kept(self, make_orchestrator, sources_repo, video_repo):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1)]
        day_start = start_of_local_day()
        adapter = FakeFeedAdapter({
            1: FeedResult.success([
                make_remote_item("BV_2359", published_at=day_start - 1),
                make_remote_item("BV_0000", published_at=day_start),
                make_remote_item("BV_0001", published_at=day_start + 1),
            ]),
        })

        report = await make_orchestrator(adapter).sync_account(make_account("A"))

        assert report.new_item_count == 2
        assert {key for (_, _, key) in video_repo.rows} == {"BV_0000", "BV_0001"}

    @pytest.mark.asyncio
    async def test_malformed_item_does_not_abort_account(
        self, make_orchestrator, sources_repo, video_repo
    ):
        """An item that cannot be normalized is skipped; later sources still run."""
        sources_repo.get_active_by_account.return_value = [
            make_source("A", 1), make_source("A", 2),
        ]
        millis = RemoteItem.model_construct(
            item_id=1, key="BV_ms", title="ms", cover="", description="",
            duration=0, published_at=int(time.time() * 1000),
        )
        adapter = FakeFeedAdapter({
            1: FeedResult.success([millis, make_remote_item("BV1")]),
            2: FeedResult.success([make_remote_item("BV2")]),
        })

        report = await make_orchestrator(adapter).sync_account(make_account("A"))

        assert [c[0] for c in adapter.calls] == [1, 2]
        assert report.error is None
        assert report.sources_ok == 2
        assert report.new_item_count == 2
        assert {key for (_, _, key) in video_repo.rows} == {"BV1", "BV2"}

    @pytest.mark.asyncio
    async def test_shared_key_keeps_first_source_title(
        self, make_orchestrator, sources_repo, emitter
    ):
        sources_repo.get_active_by_account.return_value = [
            make_source("A", 1, name="Alice"), make_source("A", 2, name="Bob"),
        ]
        adapter = FakeFeedAdapter({
            1: FeedResult.success([make_remote_item("BV1", title="Collab")]),
            2: FeedResult.success([make_remote_item("BV1", title="Collab")]),
        })

        await make_orchestrator(adapter).sync_account(make_account("A"))

        _, records, titles = emitter.emit.call_args[0]
        assert [r.source_id for r in records] == [1]
        assert titles["BV1"] == "Alice: Collab"

    @pytest.mark.asyncio
    async def test_zero_sources(self, make_orchestrator, emitter):
        report = await make_orchestrator(FakeFeedAdapter({})).sync_account(make_account("A"))

        assert report.error == "no active sources"
        assert report.new_item_count == 0
        emitter.emit.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_credential_without_default(self, make_orchestrator, sources_repo):
        adapter = FakeFeedAdapter({})

        report = await make_orchestrator(adapter).sync_account(make_account("A", credential="  "))

        assert report.error == "missing credential"
        assert adapter.calls == []
        sources_repo.get_active_by_account.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_credential_uses_default(self, make_orchestrator, sources_repo):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1)]
        adapter = FakeFeedAdapter({})

        report = await make_orchestrator(adapter, default_credential="SESSDATA=def").sync_account(
            make_account("A", credential="")
        )

        assert report.error is None
        assert adapter.calls == [(1, "SESSDATA=def")]

    @pytest.mark.asyncio
    async def test_one_failing_source_does_not_stop_the_rest(
        self, make_orchestrator, sources_repo
    ):
        sources_repo.get_active_by_account.return_value = [
            make_source("A", 1), make_source("A", 2), make_source("A", 3),
        ]
        adapter = FakeFeedAdapter({
            1: FeedResult.success([make_remote_item("BV1")]),
            2: RuntimeError("boom"),
            3: FeedResult.success([make_remote_item("BV3")]),
        })

        report = await make_orchestrator(adapter).sync_account(make_account("A"))

        assert [c[0] for c in adapter.calls] == [1, 2, 3]
        assert report.new_item_count == 2
        assert report.sources_ok == 2
        assert report.sources_failed == 1
        assert report.error is None
        assert report.status == SyncStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_all_sources_failing_sets_error(self, make_orchestrator, sources_repo):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1), make_source("A", 2)]
        adapter = FakeFeedAdapter({1: RuntimeError("boom"), 2: RuntimeError("boom")})

        report = await make_orchestrator(adapter).sync_account(make_account("A"))

        assert report.error == "all 2 sources failed: boom"
        assert report.new_item_count == 0
        assert report.status == SyncStatus.FAILED

    @pytest.mark.asyncio
    async def test_degraded_source_counts_separately(self, make_orchestrator, sources_repo):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1), make_source("A", 2)]
        adapter = FakeFeedAdapter({
            1: FeedResult.degraded("throttled [-352]: busy", throttled=True),
            2: FeedResult.success([make_remote_item("BV2")]),
        })

        report = await make_orchestrator(adapter).sync_account(make_account("A"))

        assert report.sources_degraded == 1
        assert report.sources_failed == 0
        assert report.new_item_count == 1
        assert report.error is None

    @pytest.mark.asyncio
    async def test_paces_between_sources_only(self, make_orchestrator, sources_repo, sleep):
        sources_repo.get_active_by_account.return_value = [
            make_source("A", 1), make_source("A", 2), make_source("A", 3),
        ]

        await make_orchestrator(FakeFeedAdapter({})).sync_account(make_account("A"))

        assert sleep.await_count == 2
        assert all(c.args[0] == pytest.approx(0.3) for c in sleep.await_args_list)

    @pytest.mark.asyncio
    async def test_configured_pacing(self, make_orchestrator, sources_repo, sleep):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1), make_source("A", 2)]

        await make_orchestrator(
            FakeFeedAdapter({}), inter_request_delay_ms=500
        ).sync_account(make_account("A"))

        sleep.assert_awaited_once_with(pytest.approx(0.5))

    @pytest.mark.parametrize("delay_ms", [0, 299, 501])
    def test_pacing_outside_bounds_is_rejected(self, delay_ms):
        with pytest.raises(ValidationError):
            SyncConfig(inter_request_delay_ms=delay_ms)

    @pytest.mark.asyncio
    async def test_notification_emitted_with_source_titles(
        self, make_orchestrator, sources_repo, emitter
    ):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1, name="Alice")]
        adapter = FakeFeedAdapter({
            1: FeedResult.success([make_remote_item("BV1", title="Hello")]),
        })

        await make_orchestrator(adapter).sync_account(make_account("A"))

        emitter.emit.assert_awaited_once()
        account_id, records, titles = emitter.emit.call_args[0]
        assert account_id == "A"
        assert [r.key for r in records] == ["BV1"]
        assert titles["BV1"] == "Alice: Hello"

    @pytest.mark.asyncio
    async def test_no_notification_when_nothing_new(
        self, make_orchestrator, sources_repo, emitter
    ):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1)]
        adapter = FakeFeedAdapter({1: FeedResult.success([make_remote_item("BV1")])})
        orchestrator = make_orchestrator(adapter)

        await orchestrator.sync_account(make_account("A"))
        await orchestrator.sync_account(make_account("A"))

        assert emitter.emit.await_count == 1

    @pytest.mark.asyncio
    async def test_emitter_failure_does_not_fail_account(
        self, make_orchestrator, sources_repo, emitter
    ):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1)]
        emitter.emit.return_value = False
        adapter = FakeFeedAdapter({1: FeedResult.success([make_remote_item("BV1")])})

        report = await make_orchestrator(adapter).sync_account(make_account("A"))

        assert report.new_item_count == 1
        assert report.error is None

    @pytest.mark.asyncio
    async def test_reconcile_failure_reported(
        self, make_orchestrator, sources_repo, video_repo, emitter
    ):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1)]
        video_repo.bulk_insert = AsyncMock(side_effect=OSError("disk gone"))
        adapter = FakeFeedAdapter({1: FeedResult.success([make_remote_item("BV1")])})

        report = await make_orchestrator(adapter).sync_account(make_account("A"))

        assert report.new_item_count == 0
        assert report.error.startswith("insert failed")
        emitter.emit.assert_not_called()

    @pytest.mark.asyncio
    async def test_sync_log_opened_and_closed(self, make_orchestrator, sources_repo, sync_log):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1)]
        adapter = FakeFeedAdapter({1: FeedResult.success([make_remote_item("BV1")])})

        await make_orchestrator(adapter).sync_account(make_account("A"), SyncTrigger.MANUAL)

        sync_log.start.assert_awaited_once_with("A", SyncTrigger.MANUAL)
        log_id, report = sync_log.finish.call_args[0]
        assert log_id == 1
        assert report.status == SyncStatus.SUCCESS
        assert report.new_item_count == 1

    @pytest.mark.asyncio
    async def test_sync_log_can_be_disabled(self, make_orchestrator, sources_repo, sync_log):
        sources_repo.get_active_by_account.return_value = [make_source("A", 1)]

        await make_orchestrator(
            FakeFeedAdapter({}), sync_log_enabled=False
        ).sync_account(make_account("A"))

        sync_log.start.assert_not_called()
        sync_log.finish.assert_not_called()
