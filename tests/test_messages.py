from concurrent.futures import ThreadPoolExecutor

import pytest
from bson import ObjectId

import accounts
import messages
from auth import Principal
from errors import AuthError, NotFoundError, RejectedError, ValidationError


@pytest.fixture
def alice(db):
    user = accounts.create_account(db, "alice", "a@x.com", "secret1")
    return user, Principal(account_id=user["id"], username="alice")


@pytest.fixture
def bob(db):
    user = accounts.create_account(db, "bob", "b@x.com", "secret1")
    return user, Principal(account_id=user["id"], username="bob")


def test_delivery_and_rejection_scenario(db, alice):
    user, owner = alice

    ack = messages.send_message(db, "alice", "hello there")
    assert ack == {"success": True, "message": "Message sent successfully"}

    listed = messages.list_messages(db, owner, user["id"])
    assert [m["content"] for m in listed] == ["hello there"]

    accounts.set_acceptance(db, owner, user["id"], False)
    with pytest.raises(RejectedError):
        messages.send_message(db, "alice", "are you there")
    assert len(messages.list_messages(db, owner, user["id"])) == 1


def test_stored_messages_survive_turning_acceptance_off(db, alice):
    user, owner = alice
    messages.send_message(db, "alice", "first message")
    accounts.set_acceptance(db, owner, user["id"], False)
    assert len(messages.list_messages(db, owner, user["id"])) == 1


def test_send_to_unknown_user(db):
    with pytest.raises(NotFoundError):
        messages.send_message(db, "nobody", "hello there")


@pytest.mark.parametrize("content", ["", "hey", "x" * 301])
def test_send_validates_content_length(db, alice, content):
    user, owner = alice
    with pytest.raises(ValidationError) as exc:
        messages.send_message(db, "alice", content)
    assert "content" in exc.value.errors
    assert messages.list_messages(db, owner, user["id"]) == []


def test_content_bounds_are_inclusive(db, alice):
    user, owner = alice
    messages.send_message(db, "alice", "x" * 5)
    messages.send_message(db, "alice", "y" * 300)
    assert len(messages.list_messages(db, owner, user["id"])) == 2


def test_list_is_newest_first(db, alice):
    user, owner = alice
    for content in ("message one", "message two", "message three"):
        messages.send_message(db, "alice", content)

    listed = messages.list_messages(db, owner, user["id"])
    stamps = [m["createdAt"] for m in listed]
    assert stamps == sorted(stamps, reverse=True)
    assert {m["content"] for m in listed} == {"message one", "message two", "message three"}
    assert all(set(m) == {"id", "content", "createdAt"} for m in listed)


def test_list_requires_owner(db, alice, bob):
    user, _ = alice
    _, intruder = bob
    with pytest.raises(AuthError):
        messages.list_messages(db, intruder, user["id"])


def test_delete_own_message(db, alice):
    user, owner = alice
    messages.send_message(db, "alice", "delete me please")
    message_id = messages.list_messages(db, owner, user["id"])[0]["id"]

    messages.delete_message(db, owner, user["id"], message_id)
    assert messages.list_messages(db, owner, user["id"]) == []

    with pytest.raises(NotFoundError):
        messages.delete_message(db, owner, user["id"], message_id)


def test_cross_account_delete_never_succeeds(db, alice, bob):
    alice_user, alice_owner = alice
    bob_user, bob_owner = bob
    messages.send_message(db, "bob", "for bob only")
    bob_message = messages.list_messages(db, bob_owner, bob_user["id"])[0]["id"]

    with pytest.raises(NotFoundError):
        messages.delete_message(db, alice_owner, alice_user["id"], bob_message)
    with pytest.raises(AuthError):
        messages.delete_message(db, alice_owner, bob_user["id"], bob_message)
    assert len(messages.list_messages(db, bob_owner, bob_user["id"])) == 1


@pytest.mark.parametrize("message_id", ["not-an-id", str(ObjectId())])
def test_delete_unknown_message(db, alice, message_id):
    user, owner = alice
    with pytest.raises(NotFoundError):
        messages.delete_message(db, owner, user["id"], message_id)


def test_concurrent_sends_are_both_kept(db, bob):
    user, owner = bob
    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda c: messages.send_message(db, "bob", c), ["from sender one", "from sender two"]))

    assert all(r["success"] for r in results)
    contents = {m["content"] for m in messages.list_messages(db, owner, user["id"])}
    assert contents == {"from sender one", "from sender two"}
