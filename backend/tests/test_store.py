from datetime import datetime, timezone

from fakes import make_pipeline
from pipesync.models.pipeline import StatusUpdate
from pipesync.store import PipelineStore


def _update(**overrides):
    values = dict(
        is_running=False,
        has_error=False,
        has_ever_succeeded=False,
        is_saving=False,
        is_deleting=False,
        started_at=None,
        ended_at=None,
    )
    values.update(overrides)
    return StatusUpdate(**values)


def test_upsert_inserts_then_replaces_by_name():
    store = PipelineStore()
    store.upsert(make_pipeline("p1", interval="@daily"))
    store.upsert(make_pipeline("p2"))
    replacement = make_pipeline("p1", interval="@hourly")
    store.upsert(replacement)

    assert [p.name for p in store.list()] == ["p1", "p2"]
    assert store.find_by_name("p1") is replacement


def test_find_by_job_id_uses_pipeline_name():
    store = PipelineStore([make_pipeline("p1")])
    assert store.find_by_job_id("p1").name == "p1"
    assert store.find_by_job_id("missing") is None


def test_remove_by_identity():
    p1 = make_pipeline("p1")
    store = PipelineStore([p1, make_pipeline("p2")])
    assert store.remove(make_pipeline("p1")) is True
    assert store.remove(p1) is False
    assert [p.name for p in store.list()] == ["p2"]


def test_apply_status_sets_every_flag():
    p = make_pipeline(is_running=True, has_error=True, is_saving=True)
    store = PipelineStore([p])
    store.apply_status(p, _update(is_deleting=True))

    assert p.is_running is False
    assert p.has_error is False
    assert p.is_saving is False
    assert p.is_deleting is True


def test_apply_status_success_is_sticky():
    p = make_pipeline(has_ever_succeeded=True)
    store = PipelineStore([p])
    store.apply_status(p, _update(has_ever_succeeded=False, has_error=True))

    assert p.has_ever_succeeded is True
    assert p.has_error is True


def test_apply_status_timestamps_only_move_forward():
    jan1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    jan2 = datetime(2024, 1, 2, tzinfo=timezone.utc)
    p = make_pipeline(started_at=jan2, ended_at=jan2)
    store = PipelineStore([p])

    store.apply_status(p, _update(started_at=jan1, ended_at=None))

    assert p.started_at == jan2
    assert p.ended_at == jan2


def test_read_side_queries():
    store = PipelineStore(
        [
            make_pipeline("b", extractor="tap-zendesk", is_running=True),
            make_pipeline("a", extractor="tap-carbon", has_ever_succeeded=True),
            make_pipeline("c", extractor="tap-carbon", loader="target-sqlite"),
        ]
    )
    assert store.has_pipelines()
    assert [p.name for p in store.running()] == ["b"]
    assert [p.name for p in store.successful()] == ["a"]
    assert [p.name for p in store.with_plugin("extractor", "tap-carbon")] == ["a", "c"]
    assert store.first_with_plugin("loader", "target-sqlite").name == "c"
    assert store.first_with_plugin("loader", "target-csv") is None
    assert [p.extractor for p in store.sorted_by_extractor()] == [
        "tap-carbon",
        "tap-carbon",
        "tap-zendesk",
    ]


def test_last_updated_label():
    store = PipelineStore(
        [
            make_pipeline("a", extractor="tap-a", ended_at="2024-03-04T05:06:07Z"),
            make_pipeline("b", extractor="tap-b", is_running=True),
            make_pipeline("c", extractor="tap-c"),
        ]
    )
    assert store.last_updated_label("tap-a") == "2024-03-04"
    assert store.last_updated_label("tap-b") == "Updating..."
    assert store.last_updated_label("tap-c") == ""
    assert store.last_updated_label("tap-unknown") == ""


def test_start_date_for():
    store = PipelineStore(
        [
            make_pipeline("a", extractor="tap-a", start_date="2024-01-01"),
            make_pipeline("b", extractor="tap-b"),
        ]
    )
    assert store.start_date_for("tap-a") == "2024-01-01"
    assert store.start_date_for("tap-b") == ""
    assert store.start_date_for("tap-unknown") == ""
