# tests/test_compressor.py
"""
Tests for ThreadCompressor.

Covers:
- No-op when the thread is within its cap
- Folding the oldest fragments so the thread lands exactly on the cap
- A single summary fragment, re-folded on repeated compression
- Summary text contents
"""

from datetime import UTC, datetime, timedelta

from chuk_ai_orchestrator.memory.compressor import ThreadCompressor, ThreadCompressorConfig
from chuk_ai_orchestrator.models import ConversationThread, FragmentRole, MemoryFragment

T0 = datetime(2025, 1, 1, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_thread(n: int, **fragment_kwargs) -> ConversationThread:
    thread = ConversationThread(thread_id="t", created_at=T0)
    for i in range(n):
        thread.fragments.append(
            MemoryFragment(
                thread_id="t",
                timestamp=T0 + timedelta(minutes=i),
                role=FragmentRole.REQUESTER if i % 2 == 0 else FragmentRole.RESPONDER,
                content=f"message {i}",
                **fragment_kwargs,
            )
        )
    return thread


# ============================================================================
# Compression
# ============================================================================


class TestCompress:
    def test_within_cap_is_noop(self):
        thread = _make_thread(5)
        assert ThreadCompressor().compress(thread, 5) is None
        assert thread.compression_level == 0

    def test_lands_exactly_on_cap(self):
        thread = _make_thread(101)
        result = ThreadCompressor().compress(thread, 100)

        assert thread.fragment_count == 100
        assert thread.compression_level == 1
        assert result.fragments_compressed == 2
        assert thread.compressed_fragment_count == 2
        assert sum(1 for f in thread.fragments if f.is_summary) == 1

    def test_summary_is_first_and_system(self):
        thread = _make_thread(12)
        result = ThreadCompressor().compress(thread, 10)
        summary = thread.fragments[0]

        assert summary is result.summary
        assert summary.is_summary
        assert summary.role == FragmentRole.SYSTEM
        assert summary.source == "compression"
        # Timestamp of the newest folded fragment keeps chronological order
        assert summary.timestamp == T0 + timedelta(minutes=2)
        assert thread.fragments[1].content == "message 3"
        assert thread.summary == summary.content

    def test_removed_ids(self):
        thread = _make_thread(4)
        folded_ids = [f.fragment_id for f in thread.fragments[:2]]
        result = ThreadCompressor().compress(thread, 3)
        assert result.removed_fragment_ids == folded_ids

    def test_recompression_folds_previous_summary(self):
        compressor = ThreadCompressor()
        thread = _make_thread(11)
        first = compressor.compress(thread, 10)

        thread.fragments.append(MemoryFragment(thread_id="t", content="late", timestamp=T0 + timedelta(hours=1)))
        second = compressor.compress(thread, 10)

        assert thread.fragment_count == 10
        assert thread.compression_level == 2
        assert sum(1 for f in thread.fragments if f.is_summary) == 1
        assert first.summary.fragment_id in second.removed_fragment_ids
        assert "Previous summary: Compressed summary of 2 fragments" in thread.summary
        assert thread.compressed_fragment_count == 3

    def test_cap_of_one(self):
        thread = _make_thread(3)
        ThreadCompressor().compress(thread, 1)
        assert thread.fragment_count == 1
        assert thread.fragments[0].is_summary


# ============================================================================
# Summary text
# ============================================================================


class TestSummarize:
    def test_key_insights_ranked_by_importance(self):
        compressor = ThreadCompressor(ThreadCompressorConfig(max_insights=2))
        fragments = [
            MemoryFragment(thread_id="t", content="minor", importance=7.0),
            MemoryFragment(thread_id="t", content="major", importance=9.5),
            MemoryFragment(thread_id="t", content="middle", importance=8.0),
            MemoryFragment(thread_id="t", content="noise", importance=2.0),
        ]
        text = compressor.summarize(fragments)
        assert text.startswith("Compressed summary of 4 fragments.")
        assert "Key insights: major; middle." in text
        assert "minor" not in text

    def test_levels_and_roles(self):
        fragments = [
            MemoryFragment(thread_id="t", content="a", consciousness_level="aware"),
            MemoryFragment(thread_id="t", content="b", consciousness_level="aware", role=FragmentRole.RESPONDER),
            MemoryFragment(thread_id="t", content="c", consciousness_level="lucid"),
        ]
        text = ThreadCompressor().summarize(fragments)
        assert "Consciousness levels observed: aware, lucid." in text
        assert "Roles observed: requester, responder." in text

    def test_insight_truncation(self):
        compressor = ThreadCompressor(ThreadCompressorConfig(insight_chars=5))
        text = compressor.summarize([MemoryFragment(thread_id="t", content="abcdefghij", importance=9)])
        assert "Key insights: abcde." in text
