import asyncio

import pytest
from inline_snapshot import snapshot

from github_lessons_mcp.clients.errors.openai import InvalidCredentialError
from github_lessons_mcp.clients.openai import ChatCompletionClient
from github_lessons_mcp.lessons.errors import GenerationInProgressError, NoCommitsError
from github_lessons_mcp.lessons.generator import LessonGenerator
from github_lessons_mcp.lessons.models import NavigatorMode
from github_lessons_mcp.lessons.navigator import LessonNavigator
from tests.conftest import ChatCompletionStub, build_chat_client, dump_for_snapshot, make_collection


@pytest.fixture
def lesson_navigator(chat_client: ChatCompletionClient) -> LessonNavigator:
    lesson_navigator = LessonNavigator(generator=LessonGenerator(chat_client=chat_client))
    lesson_navigator.load(collection=make_collection(3))
    return lesson_navigator


def test_initial_state(lesson_navigator: LessonNavigator):
    assert dump_for_snapshot(lesson_navigator.state) == snapshot(
        {"mode": "browsing", "current_index": 0, "is_busy": False, "total": 3, "is_first": True, "is_last": False}
    )
    assert lesson_navigator.current_record is None


async def test_start_generates_first_lesson(lesson_navigator: LessonNavigator, chat_stub: ChatCompletionStub):
    state = await lesson_navigator.start(api_key="sk-test")

    assert state.mode == NavigatorMode.WALKTHROUGH
    assert state.current_index == 0
    assert len(chat_stub.requests) == 1
    assert lesson_navigator.current_record is not None
    assert lesson_navigator.current_record.explanation == "Lesson 1"


async def test_start_does_not_regenerate_existing_lesson(chat_client: ChatCompletionClient, chat_stub: ChatCompletionStub):
    lesson_navigator = LessonNavigator(generator=LessonGenerator(chat_client=chat_client))
    lesson_navigator.load(collection=make_collection(3, explained=[0]))

    _ = await lesson_navigator.start(api_key="sk-test")

    assert chat_stub.requests == []
    assert lesson_navigator.current_record is not None
    assert lesson_navigator.current_record.explanation == "Existing lesson 1"


async def test_start_without_commits(chat_client: ChatCompletionClient):
    lesson_navigator = LessonNavigator(generator=LessonGenerator(chat_client=chat_client))

    with pytest.raises(NoCommitsError):
        _ = await lesson_navigator.start(api_key="sk-test")

    lesson_navigator.load(collection=make_collection(0))

    with pytest.raises(NoCommitsError):
        _ = await lesson_navigator.start(api_key="sk-test")

    assert lesson_navigator.mode == NavigatorMode.BROWSING


async def test_next_and_previous_are_clamped(lesson_navigator: LessonNavigator, chat_stub: ChatCompletionStub):
    _ = await lesson_navigator.start(api_key="sk-test")

    state = await lesson_navigator.previous(api_key="sk-test")
    assert state.current_index == 0

    _ = await lesson_navigator.next(api_key="sk-test")
    state = await lesson_navigator.next(api_key="sk-test")
    assert state.current_index == 2
    assert state.is_last is True

    state = await lesson_navigator.next(api_key="sk-test")
    assert state.current_index == 2

    # One lesson per commit visited, none for the clamped moves
    assert len(chat_stub.requests) == 3

    state = await lesson_navigator.previous(api_key="sk-test")
    assert state.current_index == 1
    assert len(chat_stub.requests) == 3


async def test_navigation_outside_walkthrough_does_nothing(lesson_navigator: LessonNavigator, chat_stub: ChatCompletionStub):
    state = await lesson_navigator.next(api_key="sk-test")

    assert state.mode == NavigatorMode.BROWSING
    assert state.current_index == 0
    assert chat_stub.requests == []


async def test_exit_keeps_index_and_restart_resets_it(lesson_navigator: LessonNavigator):
    _ = await lesson_navigator.start(api_key="sk-test")
    _ = await lesson_navigator.next(api_key="sk-test")

    state = lesson_navigator.exit()
    assert state.mode == NavigatorMode.BROWSING
    assert state.current_index == 1
    assert lesson_navigator.current_record is None

    state = await lesson_navigator.start(api_key="sk-test")
    assert state.mode == NavigatorMode.WALKTHROUGH
    assert state.current_index == 0


async def test_failed_generation_on_arrival_keeps_position(lesson_navigator: LessonNavigator, chat_stub: ChatCompletionStub):
    _ = await lesson_navigator.start(api_key="sk-test")

    with pytest.raises(InvalidCredentialError):
        _ = await lesson_navigator.next(api_key="invalid")

    assert lesson_navigator.current_index == 1
    assert lesson_navigator.current_record is not None
    assert lesson_navigator.current_record.explanation is None
    assert len(chat_stub.requests) == 1


async def test_navigation_is_disabled_while_generating():
    gate = asyncio.Event()
    chat_stub = ChatCompletionStub.with_lessons("Slow lesson.", gate=gate)
    lesson_navigator = LessonNavigator(generator=LessonGenerator(chat_client=build_chat_client(chat_stub)))
    lesson_navigator.load(collection=make_collection(3))

    starting = asyncio.create_task(lesson_navigator.start(api_key="sk-test"))

    while not chat_stub.requests:
        await asyncio.sleep(0)

    assert lesson_navigator.state.is_busy is True

    with pytest.raises(GenerationInProgressError):
        _ = await lesson_navigator.next(api_key="sk-test")

    with pytest.raises(GenerationInProgressError):
        _ = await lesson_navigator.start(api_key="sk-test")

    gate.set()
    state = await starting

    assert state.is_busy is False
    assert state.current_index == 0
    assert len(chat_stub.requests) == 1
