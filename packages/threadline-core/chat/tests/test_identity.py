"""Tests for thread identity resolution."""

from unittest.mock import patch

import pytest

from chat import engine
from chat.exceptions import ThreadResolutionError
from chat.identity import (
    NOT_YET_MAPPED,
    PLACEHOLDER_THREAD_ID,
    ThreadIdentityResolver,
    ThreadIdKind,
    is_legacy_thread_id,
    project_thread_id,
    resolve,
)
from chat.models import Conversation, ThreadMapping


@pytest.fixture
def resolver():
    return ThreadIdentityResolver()


class TestClassify:
    """Shape-only classification of thread ids."""

    @pytest.mark.parametrize("thread_id", ["thread-1-2", "thread_abc", "thread-"])
    def test_legacy_prefixes(self, resolver, thread_id):
        assert resolver.classify(thread_id) == ThreadIdKind.LEGACY
        assert is_legacy_thread_id(thread_id)

    @pytest.mark.parametrize("thread_id", ["4f9c0e2a1b3d4c5e6f708192a3b4c5d6", "threadX", "abc"])
    def test_native_ids(self, resolver, thread_id):
        assert resolver.classify(thread_id) == ThreadIdKind.NATIVE

    @pytest.mark.parametrize("thread_id", ["", None, PLACEHOLDER_THREAD_ID])
    def test_empty_ids(self, resolver, thread_id):
        assert resolver.classify(thread_id) == ThreadIdKind.EMPTY

    def test_sentinel_is_falsy(self):
        assert not NOT_YET_MAPPED
        assert repr(NOT_YET_MAPPED) == "NOT_YET_MAPPED"


@pytest.mark.django_db
class TestResolveRead:
    """Read mode never writes."""

    def test_unmapped_legacy_id_is_not_yet_mapped(self, resolver):
        assert resolver.resolve_read("thread-99-1") is NOT_YET_MAPPED
        assert ThreadMapping.objects.count() == 0
        assert Conversation.objects.count() == 0

    def test_native_id_resolves_to_itself_without_lookup(self, resolver, django_assert_num_queries):
        with django_assert_num_queries(0):
            assert resolver.resolve_read("abcdef") == "abcdef"

    def test_empty_id_is_not_yet_mapped(self, resolver):
        assert resolver.resolve_read(PLACEHOLDER_THREAD_ID) is NOT_YET_MAPPED

    def test_mapped_legacy_id(self, resolver, project, user):
        native_id = resolver.resolve_write("thread-legacy", project=project, user=user)

        assert resolver.resolve_read("thread-legacy") == native_id

    def test_read_is_idempotent(self, resolver):
        first = resolver.resolve_read("thread-x")
        second = resolver.resolve_read("thread-x")

        assert first is second is NOT_YET_MAPPED


@pytest.mark.django_db
class TestResolveWrite:
    """Write mode mints threads and mappings lazily."""

    def test_first_write_creates_mapping(self, resolver, project, user):
        native_id = resolver.resolve_write("thread-1-1", project=project, user=user)

        mapping = ThreadMapping.objects.get(legacy_id="thread-1-1")
        assert mapping.conversation.native_id == native_id
        assert mapping.conversation.project == project
        assert mapping.conversation.organization == project.organization
        assert len(native_id) == 32

    def test_repeat_write_is_stable(self, resolver, project, user):
        first = resolver.resolve_write("thread-1-1", project=project, user=user)
        second = resolver.resolve_write("thread-1-1", project=project, user=user)

        assert first == second
        assert ThreadMapping.objects.count() == 1
        assert Conversation.objects.count() == 1

    def test_native_id_passes_through(self, resolver, project, user):
        assert resolver.resolve_write("deadbeef", project=project, user=user) == "deadbeef"
        assert ThreadMapping.objects.count() == 0

    def test_empty_id_rejected(self, resolver, project, user):
        with pytest.raises(ThreadResolutionError):
            resolver.resolve_write("", project=project, user=user)

    def test_concurrent_first_writes_converge(self, resolver, project, user):
        """A writer that loses the mapping insert adopts the winner's thread."""
        winner = engine.mint_thread(project=project, created_by=user)
        real_mint = engine.mint_thread

        def mint_after_competitor(**kwargs):
            # The competing writer commits its mapping between our lookup and insert
            ThreadMapping.objects.create(legacy_id="thread-race", conversation=winner)
            return real_mint(**kwargs)

        with patch("chat.identity.engine.mint_thread", side_effect=mint_after_competitor):
            native_id = resolver.resolve_write("thread-race", project=project, user=user)

        assert native_id == winner.native_id
        assert ThreadMapping.objects.filter(legacy_id="thread-race").count() == 1
        # The loser's freshly minted thread is discarded
        assert Conversation.objects.count() == 1

    def test_module_level_resolve(self, project, user):
        native_id = resolve("thread-mod", mode="write", project=project, user=user)

        assert resolve("thread-mod") == native_id


@pytest.mark.django_db
def test_project_thread_id_is_owner_scoped(project, user):
    assert project_thread_id(project) == f"thread-{project.pk}-{user.pk}"
    assert is_legacy_thread_id(project_thread_id(project))
