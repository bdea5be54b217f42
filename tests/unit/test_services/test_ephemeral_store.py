import pytest


def holder_key(holder_id):
    return f"holder:{holder_id}"


@pytest.mark.unit
class TestEphemeralStore:
    """Unit tests for the Redis-backed EphemeralStore."""

    def test_unclaimed_write_applies_ttl_to_every_key(self, store, redis_client):
        written = store.set_many_unless_claimed(
            "claim", {"claim": "a", "holder:a": "1", "other": "2"}, 60, holder_key
        )

        assert written is True
        assert [store.get(k) for k in ("claim", "holder:a", "other")] == ["a", "1", "2"]
        assert all(0 < redis_client.ttl(k) <= 60 for k in ("claim", "holder:a", "other"))

    def test_live_claim_blocks_write(self, store, redis_client):
        redis_client.set("claim", "a", ex=60)
        redis_client.set("holder:a", "1", ex=60)

        written = store.set_many_unless_claimed("claim", {"claim": "b", "holder:b": "2"}, 60, holder_key)

        assert written is False
        assert redis_client.get("claim") == "a"
        assert redis_client.get("holder:b") is None

    def test_claim_with_expired_holder_is_overwritten(self, store, redis_client):
        redis_client.set("claim", "a", ex=60)

        written = store.set_many_unless_claimed("claim", {"claim": "b", "holder:b": "2"}, 60, holder_key)

        assert written is True
        assert redis_client.get("claim") == "b"

    def test_concurrent_claim_wins(self, store, redis_client):
        """Another client takes the claim between our check and our write: nothing of ours is written."""
        redis_client.set("claim", "a", ex=60)

        def racing_holder_key(holder_id):
            redis_client.set("claim", "c", ex=60)
            redis_client.set("holder:c", "3", ex=60)
            return holder_key(holder_id)

        written = store.set_many_unless_claimed(
            "claim", {"claim": "b", "holder:b": "2"}, 60, racing_holder_key
        )

        assert written is False
        assert redis_client.get("claim") == "c"
        assert redis_client.get("holder:b") is None

    def test_delete_reports_existing_keys_only(self, store, redis_client):
        redis_client.set("present", "x", ex=60)

        assert store.delete("present", "missing") == 1
        assert store.delete("present") == 0
        assert store.delete() == 0

    def test_get_json(self, store, redis_client):
        redis_client.set("payload", '{"owner_id": 1, "household_id": 2}', ex=60)

        assert store.get_json("payload") == {"owner_id": 1, "household_id": 2}
        assert store.get_json("absent") is None
