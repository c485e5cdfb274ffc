import json

from relay.context.user_facts import UserFactStore
from relay.models import UserFacts


async def test_load_missing_returns_empty_record(fact_store):
    facts = await fact_store.load("nobody")
    assert facts == UserFacts()
    assert facts.message_count == 0
    assert facts.topics == []


async def test_save_and_load(fact_store):
    original = UserFacts(name="Alex", age=30, location="Denver", topics=["ski"], last_topic="ski", message_count=3)
    await fact_store.save("u1", original)

    loaded = await fact_store.load("u1")
    assert loaded.name == "Alex"
    assert loaded.age == 30
    assert loaded.location == "Denver"
    assert loaded.topics == ["ski"]
    assert loaded.last_topic == "ski"
    assert loaded.message_count == 3


async def test_file_uses_camel_case_keys(fact_store, tmp_path):
    await fact_store.save("u1", UserFacts(name="Alex", last_topic="ski", message_count=1))
    data = json.loads((tmp_path / "conversations" / "u1_context.json").read_text())
    assert data["name"] == "Alex"
    assert data["lastTopic"] == "ski"
    assert data["messageCount"] == 1
    assert "lastInteraction" in data
    assert data["topics"] == []


async def test_corrupt_file_returns_empty_record(fact_store, tmp_path):
    path = tmp_path / "conversations" / "u1_context.json"
    path.parent.mkdir(parents=True)
    path.write_text("{not json")

    assert await fact_store.load("u1") == UserFacts()


async def test_save_failure_is_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not dir")
    store = UserFactStore(data_dir=str(blocker))

    await store.save("u1", UserFacts(name="Sam"))

    assert any("Error saving context" in r.message for r in caplog.records)
    assert await store.load("u1") == UserFacts()


async def test_delete_is_idempotent(fact_store):
    await fact_store.save("u1", UserFacts(name="Sam"))
    await fact_store.delete("u1")
    await fact_store.delete("u1")
    assert (await fact_store.load("u1")).name is None
