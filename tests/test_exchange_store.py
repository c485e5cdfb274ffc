from datetime import datetime

from relay.conversation.exchange_store import ExchangeStore, format_line, parse_line
from relay.models import Role


async def test_recent_returns_appended_turns_in_order(exchange_store):
    turns = [
        (Role.USER, "hello"),
        (Role.ASSISTANT, "hi there"),
        (Role.USER, "how are you?"),
        (Role.ASSISTANT, "great, thanks: [really]"),
    ]
    for role, text in turns:
        await exchange_store.append("u1", role, text)

    recent = await exchange_store.recent("u1", 10)
    assert [(e.role, e.text) for e in recent] == turns


async def test_recent_caps_to_limit_keeping_latest(exchange_store):
    for i in range(7):
        await exchange_store.append("u1", Role.USER, f"msg{i}")

    recent = await exchange_store.recent("u1", 3)
    assert [e.text for e in recent] == ["msg4", "msg5", "msg6"]


async def test_recent_default_limit_is_ten(exchange_store):
    for i in range(12):
        await exchange_store.append("u1", Role.USER, f"msg{i}")
    recent = await exchange_store.recent("u1")
    assert len(recent) == 10
    assert recent[0].text == "msg2"


async def test_recent_missing_log_is_empty(exchange_store):
    assert await exchange_store.recent("nobody", 5) == []


async def test_separate_users(exchange_store):
    await exchange_store.append("111", Role.USER, "a")
    await exchange_store.append("222", Role.USER, "b")

    assert [e.text for e in await exchange_store.recent("111")] == ["a"]
    assert [e.text for e in await exchange_store.recent("222")] == ["b"]


async def test_log_line_format(exchange_store):
    await exchange_store.append("u1", Role.ASSISTANT, "Hi")
    content = (exchange_store.data_dir / "u1.txt").read_text()
    assert content.endswith("] AI: Hi\n")
    assert content.startswith("[")


async def test_multiline_text_is_folded_onto_one_line(exchange_store):
    await exchange_store.append("u1", Role.USER, "first line\nsecond line")
    recent = await exchange_store.recent("u1")
    assert len(recent) == 1
    assert recent[0].text == "first line second line"


async def test_blank_text_is_not_stored(exchange_store, caplog):
    await exchange_store.append("u1", Role.USER, "")
    await exchange_store.append("u1", Role.ASSISTANT, "  \n ")

    assert await exchange_store.recent("u1") == []
    assert not (exchange_store.data_dir / "u1.txt").exists()
    assert "Skipping blank" in caplog.text


async def test_surrounding_whitespace_is_trimmed(exchange_store):
    await exchange_store.append("u1", Role.USER, "  hello there  ")
    recent = await exchange_store.recent("u1")
    assert recent[0].text == "hello there"


async def test_malformed_lines_are_skipped(exchange_store):
    path = exchange_store.data_dir / "u1.txt"
    path.parent.mkdir(parents=True)
    good = format_line(Role.USER, "valid", datetime(2024, 1, 2, 3, 4, 5))
    path.write_text(
        "garbage line\n"
        + good
        + "[not a date] User: bad timestamp\n"
        + "[01/02/2024, 03:04:05] Robot: unknown role\n"
        + "\n"
    )

    recent = await exchange_store.recent("u1")
    assert len(recent) == 1
    assert recent[0].text == "valid"
    assert recent[0].timestamp == datetime(2024, 1, 2, 3, 4, 5)


def test_parse_line_roundtrip():
    when = datetime(2024, 5, 6, 7, 8, 9)
    exchange = parse_line(format_line(Role.ASSISTANT, "Sure thing.", when))
    assert exchange is not None
    assert exchange.role is Role.ASSISTANT
    assert exchange.text == "Sure thing."
    assert exchange.timestamp == when


async def test_clear_removes_log_and_facts(exchange_store, fact_store):
    from relay.models import UserFacts

    await exchange_store.append("u1", Role.USER, "hello")
    await fact_store.save("u1", UserFacts(name="Sam"))

    assert await exchange_store.clear("u1") is True
    assert await exchange_store.recent("u1") == []
    assert (await fact_store.load("u1")).name is None


async def test_clear_is_idempotent(exchange_store):
    assert await exchange_store.clear("never-seen") is True
    assert await exchange_store.clear("never-seen") is True


async def test_summarize_empty(exchange_store):
    summary = await exchange_store.summarize("nobody")
    assert summary.turn_count == 0
    assert summary.exchange_count == 0
    assert summary.last_interaction is None
    assert summary.size_bytes == 0
    assert summary.context_length == 0


async def test_summarize_counts_exchanges_as_pairs(exchange_store):
    await exchange_store.append("u1", Role.USER, "hi")
    summary = await exchange_store.summarize("u1")
    assert summary.turn_count == 1
    assert summary.exchange_count == 0

    await exchange_store.append("u1", Role.ASSISTANT, "hello")
    summary = await exchange_store.summarize("u1")
    assert summary.turn_count == 2
    assert summary.exchange_count == 1
    assert summary.last_interaction is not None
    assert summary.size_bytes == (exchange_store.data_dir / "u1.txt").stat().st_size


async def test_summarize_uses_context_builder_length(exchange_store, context_builder):
    await exchange_store.append("u1", Role.USER, "hi")
    await exchange_store.append("u1", Role.ASSISTANT, "hello")

    summary = await exchange_store.summarize("u1", context_builder)
    assert summary.context_length == len(await context_builder.build("u1"))
    assert summary.context_length > 0


async def test_list_all(exchange_store, fact_store):
    from relay.models import UserFacts

    await exchange_store.append("alice", Role.USER, "hi")
    await exchange_store.append("bob", Role.USER, "hey")
    await exchange_store.append("bob", Role.ASSISTANT, "yo")
    await fact_store.save("bob", UserFacts(name="Bob"))

    listed = await exchange_store.list_all()
    assert [c.user_id for c in listed] == ["alice", "bob"]
    assert listed[1].summary.exchange_count == 1


async def test_list_all_without_data_dir(tmp_path):
    store = ExchangeStore(data_dir=str(tmp_path / "missing"))
    assert await store.list_all() == []


async def test_append_failure_is_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = ExchangeStore(data_dir=str(blocker))

    await store.append("u1", Role.USER, "hello")

    assert any("Error appending message" in r.message for r in caplog.records)
    assert await store.recent("u1") == []


async def test_user_ids_cannot_escape_data_dir(exchange_store, tmp_path):
    await exchange_store.append("../evil", Role.USER, "hi")
    assert not (tmp_path / "evil.txt").exists()
    assert [e.text for e in await exchange_store.recent("../evil")] == ["hi"]
