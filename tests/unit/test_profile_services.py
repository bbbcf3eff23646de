"""Unit tests for the profile store, resolver and mutation pipeline."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.api.middleware.error_handler import ProfileUpdateError
from src.schemas.auth import AuthIdentity
from src.schemas.profile import ProfileUpdate, Skill
from src.services.profile_resolver import ProfileResolver
from src.services.profile_store import (
    INTERESTS_TABLE,
    LEARN_SKILLS_TABLE,
    PROFILES_TABLE,
    TAUGHT_SKILLS_TABLE,
)
from tests.fakes import ALICE_ID, BOB_ID


@pytest.fixture
def alice() -> AuthIdentity:
    return AuthIdentity(
        user_id=ALICE_ID,
        email="alice@example.com",
        metadata={"full_name": "Alice Liddell", "avatar_url": "https://img.test/alice.png"},
    )


class TestProfileStore:
    """Tests for ProfileStore."""

    @pytest.mark.asyncio
    async def test_upsert_merges_into_existing_row(self, store, fake_supabase) -> None:
        await store.upsert_profile(ALICE_ID, {"name": "Alice", "bio": "hi"})
        await store.upsert_profile(ALICE_ID, {"location": "Berlin"})

        rows = fake_supabase.db.rows(PROFILES_TABLE)
        assert len(rows) == 1
        assert rows[0]["name"] == "Alice"
        assert rows[0]["bio"] == "hi"
        assert rows[0]["location"] == "Berlin"

    @pytest.mark.asyncio
    async def test_find_profile_by_email_ignores_case(self, store) -> None:
        await store.upsert_profile(BOB_ID, {"email": "bob@example.com", "name": "Bob"})

        assert (await store.find_profile_by_email("BOB@example.com"))["id"] == BOB_ID
        assert await store.find_profile_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_find_profile_by_email_treats_wildcards_literally(self, store) -> None:
        await store.upsert_profile(BOB_ID, {"email": "axb@example.com", "name": "Bob"})
        await store.upsert_profile(ALICE_ID, {"email": "a%c@example.com", "name": "Alice"})

        assert await store.find_profile_by_email("a_b@example.com") is None
        assert await store.find_profile_by_email("a%b@example.com") is None
        assert (await store.find_profile_by_email("A%C@example.com"))["id"] == ALICE_ID


    @pytest.mark.asyncio
    async def test_replace_keeps_old_rows_when_insert_fails(self, store, fake_supabase) -> None:
        await store.replace_interests(ALICE_ID, ["Chess"])
        fake_supabase.db.fail_on.add((INTERESTS_TABLE, "insert"))

        with pytest.raises(RuntimeError):
            await store.replace_interests(ALICE_ID, ["Go"])

        assert await store.list_interests(ALICE_ID) == ["Chess"]

    @pytest.mark.asyncio
    async def test_replace_swaps_whole_collection(self, store) -> None:
        await store.replace_learn_skills(ALICE_ID, ["Go", "Rust"])
        await store.replace_learn_skills(ALICE_ID, ["Python"])

        assert await store.list_learn_skills(ALICE_ID) == ["Python"]

    @pytest.mark.asyncio
    async def test_accepted_connections_in_both_directions(self, store, fake_supabase) -> None:
        rows = fake_supabase.db.rows("user_connections")
        rows.append({"id": "c1", "user_id": ALICE_ID, "connected_user_id": BOB_ID, "status": "accepted"})
        rows.append({"id": "c2", "user_id": "carol", "connected_user_id": ALICE_ID, "status": "accepted"})
        rows.append({"id": "c3", "user_id": "dave", "connected_user_id": ALICE_ID, "status": "pending"})

        assert await store.get_accepted_connections(ALICE_ID) == [BOB_ID, "carol"]
        assert await store.get_accepted_connections(BOB_ID) == [ALICE_ID]


class TestProfileResolver:
    """Tests for ProfileResolver."""

    @pytest.mark.asyncio
    async def test_missing_row_gives_placeholder(self, resolver, alice) -> None:
        profile = await resolver.resolve(alice)

        assert profile.id == ALICE_ID
        assert profile.name == "Alice Liddell"
        assert profile.profile_image == "https://img.test/alice.png"
        assert profile.profile_complete is False
        assert profile.skills_to_teach == []
        assert profile.skills_to_learn == []
        assert profile.interests == []
        assert profile.connections == []

    @pytest.mark.asyncio
    async def test_placeholder_name_falls_back_to_email(self, resolver) -> None:
        profile = await resolver.resolve(AuthIdentity(user_id=BOB_ID, email="bob@example.com"))

        assert profile.name == "bob"

    @pytest.mark.asyncio
    async def test_store_failure_gives_placeholder(self, alice) -> None:
        store = MagicMock()
        store.get_profile = AsyncMock(side_effect=RuntimeError("connection reset"))

        profile = await ProfileResolver(store).resolve(alice)

        assert profile.id == ALICE_ID
        assert profile.profile_complete is False

    @pytest.mark.asyncio
    async def test_assembles_stored_profile(self, store, resolver, alice) -> None:
        await store.upsert_profile(
            ALICE_ID,
            {"email": "alice@example.com", "name": "Alice", "location": "Berlin", "school_or_job": "TU"},
        )
        await store.replace_taught_skills(ALICE_ID, [Skill(name="Guitar", rating=4, description="Chords")])
        await store.replace_interests(ALICE_ID, ["Chess"])

        profile = await resolver.resolve(alice)

        assert profile.profile_complete is True
        assert profile.skills_to_teach[0].name == "Guitar"
        assert profile.skills_to_teach[0].rating == 4
        assert profile.interests == ["Chess"]


class TestProfileMutationPipeline:
    """Tests for ProfileMutationPipeline."""

    @pytest.mark.asyncio
    async def test_first_update_creates_row_seeded_from_identity(self, pipeline, fake_supabase, alice) -> None:
        profile = await pipeline.apply(alice, ProfileUpdate(location="Berlin"))

        row = fake_supabase.db.rows(PROFILES_TABLE)[0]
        assert row["id"] == ALICE_ID
        assert row["name"] == "Alice Liddell"
        assert row["email"] == "alice@example.com"
        assert profile.location == "Berlin"

    @pytest.mark.asyncio
    async def test_required_fields_make_profile_complete(self, pipeline, alice) -> None:
        profile = await pipeline.apply(
            alice,
            ProfileUpdate(name="Alice", location="Berlin", school_or_job="Student at TU Berlin"),
        )

        assert profile.name == "Alice"
        assert profile.location == "Berlin"
        assert profile.school_or_job == "Student at TU Berlin"
        assert profile.profile_complete is True

    @pytest.mark.asyncio
    async def test_updating_one_collection_leaves_others(self, pipeline, alice) -> None:
        await pipeline.apply(
            alice,
            ProfileUpdate(
                skills_to_teach=[Skill(name="Guitar", rating=3)],
                skills_to_learn=["Go"],
                interests=["Chess"],
            ),
        )

        profile = await pipeline.apply(alice, ProfileUpdate(skills_to_teach=[Skill(name="Piano", rating=5)]))

        assert [skill.name for skill in profile.skills_to_teach] == ["Piano"]
        assert profile.skills_to_learn == ["Go"]
        assert profile.interests == ["Chess"]

    @pytest.mark.asyncio
    async def test_collection_only_update_skips_profile_write(self, pipeline, store, fake_supabase, alice) -> None:
        await store.upsert_profile(ALICE_ID, {"name": "Alice"})
        fake_supabase.db.calls.clear()

        await pipeline.apply(alice, ProfileUpdate(interests=["Chess"]))

        assert (PROFILES_TABLE, "upsert") not in fake_supabase.db.calls

    @pytest.mark.asyncio
    async def test_failure_names_the_step_and_keeps_earlier_writes(self, pipeline, fake_supabase, alice) -> None:
        fake_supabase.db.fail_on.add((LEARN_SKILLS_TABLE, "insert"))

        with pytest.raises(ProfileUpdateError) as exc_info:
            await pipeline.apply(
                alice,
                ProfileUpdate(location="Berlin", skills_to_teach=[Skill(name="Guitar")], skills_to_learn=["Go"]),
            )

        assert "replace learn skills" in exc_info.value.message
        assert fake_supabase.db.rows(PROFILES_TABLE)[0]["location"] == "Berlin"
        assert len(fake_supabase.db.rows(TAUGHT_SKILLS_TABLE)) == 1
