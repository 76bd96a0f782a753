import asyncio
import json
import threading
import time
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.models.models import ConversationState, JobPosting, MatchExplanation, MatchScore
from app.services.assistant_service import AssistantService
from app.services.db import InMemoryConversationStore, InMemoryMatchStore, MongoMatchStore
from app.services.match_service import MatchService, filter_by_band


def intent_llm(parameters_by_call):
    """Completion callable answering intent prompts with update_filters intents in turn."""
    queue = list(parameters_by_call)
    lock = threading.Lock()

    def llm(prompt, temperature=0.2):
        with lock:
            params = queue.pop(0)
        return json.dumps({"type": "update_filters", "parameters": params, "confidence": 0.9})
    return llm


def make_match(job_id, score, user_id="u1"):
    return MatchScore(job_id=job_id, user_id=user_id, score=score, explanation=MatchExplanation(overall_reason=f"r{job_id}"))


class TestAssistantService:

    def test_turn_is_persisted(self):
        store = InMemoryConversationStore()
        service = AssistantService(store, llm=intent_llm([{"workMode": "remote"}]))

        reply = asyncio.run(service.process_message("u1", "show only remote jobs"))
        state = asyncio.run(store.load("u1"))

        assert reply.filter_update.changes() == {"workMode": ["remote"]}
        assert [m.role for m in state.messages] == ["user", "assistant"]
        assert state.messages[0].content == "show only remote jobs"
        assert state.messages[1].content == reply.response
        assert state.messages[1].filter_update == {"workMode": ["remote"]}
        assert state.current_filters == {"workMode": ["remote"]}

    def test_filters_merge_across_turns(self):
        store = InMemoryConversationStore()
        service = AssistantService(store, llm=intent_llm([
            {"workMode": ["remote", "hybrid"], "location": "Lisbon"},
            {"workMode": "onsite"},
        ]))

        async def run():
            await service.process_message("u1", "remote or hybrid in Lisbon")
            await service.process_message("u1", "actually onsite")
            return await store.load("u1")

        state = asyncio.run(run())
        assert len(state.messages) == 4
        assert state.current_filters == {"workMode": ["onsite"], "location": "Lisbon"}

    def test_concurrent_turns_for_one_user_are_serialised(self):
        store = InMemoryConversationStore()
        service = AssistantService(store, llm=intent_llm([{"location": "A"}, {"location": "B"}, {"location": "C"}]))

        async def run():
            await asyncio.gather(*[service.process_message("u1", f"turn {i}") for i in range(3)])
            return await store.load("u1")

        state = asyncio.run(run())
        assert len(state.messages) == 6
        assert service._locks == {}

    def test_lock_released_after_turn(self):
        service = AssistantService(InMemoryConversationStore(), llm=intent_llm([{"location": "Oslo"}]))
        asyncio.run(service.process_message("u1", "Oslo"))
        asyncio.run(service.clear_conversation("u1"))
        assert service._locks == {}

    def test_clear_conversation(self):
        store = InMemoryConversationStore()
        service = AssistantService(store, llm=intent_llm([{"location": "Rome"}]))

        async def run():
            await service.process_message("u1", "Rome please")
            await service.clear_conversation("u1")
            return await service.get_conversation("u1")

        state = asyncio.run(run())
        assert state.messages == []
        assert state.current_filters == {}

    def test_unknown_user_gets_empty_conversation(self):
        service = AssistantService(InMemoryConversationStore())
        state = asyncio.run(service.get_conversation("nobody"))
        assert state == ConversationState(user_id="nobody")


class TestMatchService:

    def test_batches_are_bounded_and_ordered(self, resume):
        active = 0
        peak = 0
        lock = threading.Lock()

        def fake_score(resume, job, llm=None):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1
            return make_match(job.id, 50, resume.user_id)

        jobs = [JobPosting(id=f"j{i}", title="Engineer") for i in range(7)]
        service = MatchService(InMemoryMatchStore(), batch_size=3)
        with patch("app.services.match_service.calculate_match_score", side_effect=fake_score):
            matches = asyncio.run(service.calculate_matches("user-1", resume, jobs))

        assert [m.job_id for m in matches] == [f"j{i}" for i in range(7)]
        assert peak <= 3
        stored = asyncio.run(service.get_matches("user-1"))
        assert len(stored) == 7

    def test_recalculation_replaces_previous_matches(self):
        store = InMemoryMatchStore()

        async def run():
            await store.replace_for_user("u1", [make_match("a", 10), make_match("b", 20)])
            await store.replace_for_user("u1", [make_match("c", 30)])
            return await store.list_for_user("u1")

        assert [m.job_id for m in asyncio.run(run())] == ["c"]

    def test_band_and_job_filters(self):
        store = InMemoryMatchStore()
        service = MatchService(store)
        asyncio.run(store.replace_for_user("u1", [
            make_match("a", 85), make_match("b", 70), make_match("c", 40), make_match("d", 39),
        ]))

        assert [m.job_id for m in asyncio.run(service.get_matches("u1", band="high"))] == ["a"]
        assert [m.job_id for m in asyncio.run(service.get_matches("u1", band="medium"))] == ["b", "c"]
        assert [m.job_id for m in asyncio.run(service.get_matches("u1", job_ids=["a", "d"]))] == ["a", "d"]

    def test_best_matches(self):
        store = InMemoryMatchStore()
        service = MatchService(store)
        asyncio.run(store.replace_for_user("u1", [make_match(str(i), i * 10) for i in range(10)]))

        best = asyncio.run(service.get_best_matches("u1", limit=3))
        assert [m.score for m in best] == [90, 80, 70]
        assert asyncio.run(service.get_match_for_job("u1", "4")).score == 40
        assert asyncio.run(service.get_match_for_job("u1", "missing")) is None

    def test_export_report(self, tmp_path):
        store = InMemoryMatchStore()
        service = MatchService(store)
        asyncio.run(store.replace_for_user("u1", [make_match("low", 20), make_match("high", 90)]))

        csv_path, md_path = asyncio.run(service.export_report("u1", str(tmp_path)))

        csv_lines = open(csv_path, encoding="utf-8").read().splitlines()
        assert csv_lines[0] == "job_id,score,matching_skills,keyword_alignment,reason"
        assert csv_lines[1].startswith("high,90")
        md = open(md_path, encoding="utf-8").read()
        assert "| 1 | high | 90 |" in md

    def test_export_empty_report(self, tmp_path):
        service = MatchService(InMemoryMatchStore())
        _, md_path = asyncio.run(service.export_report("u2", str(tmp_path)))
        assert "No matches calculated yet" in open(md_path, encoding="utf-8").read()

    def test_filter_by_band_all(self):
        matches = [make_match("a", 1), make_match("b", 99)]
        assert filter_by_band(matches, "all") == matches

    def test_duplicate_job_ids_scored_once(self, resume):
        calls = []

        def fake_score(resume, job, llm=None):
            calls.append(job.title)
            return make_match(job.id, 50, resume.user_id)

        jobs = [JobPosting(id="1", title="First"), JobPosting(id="2", title="Other"), JobPosting(id="1", title="Repeat")]
        service = MatchService(InMemoryMatchStore())
        with patch("app.services.match_service.calculate_match_score", side_effect=fake_score):
            matches = asyncio.run(service.calculate_matches("user-1", resume, jobs))

        assert [m.job_id for m in matches] == ["1", "2"]
        assert sorted(calls) == ["First", "Other"]
        assert len(asyncio.run(service.get_matches("user-1"))) == 2


class TestMongoMatchStore:

    def test_upserts_before_pruning(self):
        coll = MagicMock()
        coll.bulk_write = AsyncMock()
        coll.delete_many = AsyncMock()
        store = MongoMatchStore(coll)

        asyncio.run(store.replace_for_user("u1", [make_match("a", 10), make_match("b", 20)]))

        ops = coll.bulk_write.await_args.args[0]
        assert [op._filter for op in ops] == [{"userId": "u1", "jobId": "a"}, {"userId": "u1", "jobId": "b"}]
        coll.delete_many.assert_awaited_once_with({"userId": "u1", "jobId": {"$nin": ["a", "b"]}})

    def test_failed_write_keeps_previous_matches(self):
        coll = MagicMock()
        coll.bulk_write = AsyncMock(side_effect=RuntimeError("write failed"))
        coll.delete_many = AsyncMock()
        store = MongoMatchStore(coll)

        with pytest.raises(RuntimeError):
            asyncio.run(store.replace_for_user("u1", [make_match("a", 10)]))
        coll.delete_many.assert_not_awaited()

    def test_empty_recalculation_clears(self):
        coll = MagicMock()
        coll.bulk_write = AsyncMock()
        coll.delete_many = AsyncMock()
        asyncio.run(MongoMatchStore(coll).replace_for_user("u1", []))
        coll.bulk_write.assert_not_awaited()
        coll.delete_many.assert_awaited_once_with({"userId": "u1", "jobId": {"$nin": []}})
