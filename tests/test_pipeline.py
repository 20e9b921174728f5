import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import date, timedelta

import pytest

from core.assembler import affiliate_link, build_product, format_message, is_search_link
from core.dedup import DedupMemory
from core.models import Kept, ListingEntry, Skipped, SkipReason, TitleLine
from core.pipeline import process_entries

TODAY = date(2024, 5, 1)
LINK = "https://www.dmsguild.com/product/123456/Curse-of-Strahd"


def make_entry(title="Curse of Strahd", day=TODAY, link=LINK, body=None):
    lines = [f"{title} Date Added: {day.isoformat()} A gothic horror adventure."]
    lines += body if body is not None else ["Dungeon Masters Guild", "$5.00"]
    return ListingEntry(text="\n\n".join(lines) + "\n", link=link)


def run(entries, memory, today=TODAY, title_filter="", affiliate_id="563484"):
    return list(process_entries(entries, memory, today, title_filter, affiliate_id))


class TestDedupMemory:
    def test_observe(self):
        memory = DedupMemory(current_day=TODAY)
        assert memory.observe("A") is False
        assert memory.observe("A") is True
        assert "A" in memory
        assert len(memory) == 1

    def test_roll_same_day_keeps_titles(self):
        memory = DedupMemory(current_day=TODAY, seen_titles={"A"})
        assert memory.roll(TODAY) is False
        assert "A" in memory

    def test_roll_new_day_clears(self):
        memory = DedupMemory(current_day=TODAY, seen_titles={"A", "B"})
        assert memory.roll(TODAY + timedelta(days=1)) is True
        assert len(memory) == 0
        assert memory.current_day == TODAY + timedelta(days=1)


class TestAssembler:
    def test_affiliate_link(self):
        assert affiliate_link(LINK, "563484") == f"{LINK}?affiliate_id=563484"

    def test_affiliate_link_keeps_existing_query(self):
        link = affiliate_link(f"{LINK}?src=browse", "42")
        assert link == f"{LINK}?src=browse&affiliate_id=42"

    def test_affiliate_link_leaves_existing_encoding_alone(self):
        link = affiliate_link("https://www.dmsguild.com/x?name=a%20b", "9")
        assert link == "https://www.dmsguild.com/x?name=a%20b&affiliate_id=9"

    def test_affiliate_link_empty_id(self):
        assert affiliate_link(LINK, "") == LINK

    def test_is_search_link(self):
        assert is_search_link("https://www.dmsguild.com/browse.php?keywords=x")
        assert not is_search_link(LINK)

    def test_format_message(self):
        entry = make_entry()
        title_line = TitleLine("Curse of Strahd", TODAY, "A gothic horror adventure. [click here]")
        body = ["Dungeon Masters Guild", "Visit https://example.com for maps", "15 $20"]
        product = build_product(entry, title_line, body)
        assert product.description_lines == ("Visit example.com for maps",)
        assert product.price == "Normal Price: 15\nSale Price: $20"

        message = format_message(product, title_line.trailing_text, "563484")
        assert message.splitlines() == [
            "**__Curse of Strahd__**",
            "**Date Added**: 2024-05-01",
            "**Description**:",
            "A gothic horror adventure.",
            "Visit example.com for maps",
            "[*click the link below for more information*]",
            "**Normal Price**: 15",
            "**Sale Price**: $20",
            f"**Link**: {LINK}?affiliate_id=563484",
        ]

    def test_missing_price(self):
        product = build_product(make_entry(), TitleLine("T", TODAY, ""), ["Some text"])
        assert "**Price**: N/A" in format_message(product, "", "1")


class TestProcessEntries:
    def test_new_product_today_is_kept(self):
        memory = DedupMemory(current_day=TODAY)
        outcomes = run([make_entry()], memory)
        assert len(outcomes) == 1
        kept = outcomes[0]
        assert isinstance(kept, Kept)
        assert "Curse of Strahd" in kept.message
        assert "2024-05-01" in kept.message
        assert "**Price**: $5.00" in kept.message
        assert f"{LINK}?affiliate_id=563484" in kept.message
        assert "Dungeon Masters Guild" not in kept.message

    def test_repeat_pass_same_day_is_skipped(self):
        memory = DedupMemory(current_day=TODAY)
        run([make_entry()], memory)
        outcomes = run([make_entry()], memory)
        assert outcomes == [Skipped(SkipReason.ALREADY_SEEN, "Curse of Strahd")]

    def test_duplicate_within_one_page(self):
        memory = DedupMemory(current_day=TODAY)
        outcomes = run([make_entry(), make_entry()], memory)
        assert isinstance(outcomes[0], Kept)
        assert outcomes[1].reason is SkipReason.ALREADY_SEEN

    def test_old_entry_is_skipped_but_recorded(self):
        memory = DedupMemory(current_day=TODAY)
        outcomes = run([make_entry(day=TODAY - timedelta(days=3))], memory)
        assert outcomes[0].reason is SkipReason.NOT_TODAY
        assert "Curse of Strahd" in memory

    def test_day_rollover_clears_memory(self):
        memory = DedupMemory(current_day=TODAY)
        run([make_entry()], memory)
        assert len(memory) == 1

        tomorrow = TODAY + timedelta(days=1)
        outcomes = run([], memory, today=tomorrow)
        assert outcomes == []
        assert len(memory) == 0
        assert memory.current_day == tomorrow

    def test_rollover_follows_clock_not_entry_date(self):
        memory = DedupMemory(current_day=TODAY)
        tomorrow = TODAY + timedelta(days=1)
        outcomes = run([make_entry(day=TODAY)], memory, today=tomorrow)
        assert outcomes[0].reason is SkipReason.NOT_TODAY
        assert memory.current_day == tomorrow

    def test_title_filter(self):
        memory = DedupMemory(current_day=TODAY)
        entries = [
            make_entry(title="Curse of Strahd (Fantasy Grounds Edition)"),
            make_entry(title="Curse of Strahd"),
        ]
        outcomes = run(entries, memory, title_filter="Fantasy Grounds")
        assert isinstance(outcomes[0], Kept)
        assert outcomes[1].reason is SkipReason.FILTERED
        assert "Curse of Strahd" not in memory

    def test_search_link_is_discarded(self):
        memory = DedupMemory(current_day=TODAY)
        entry = make_entry(link="https://www.dmsguild.com/browse.php?keywords=fantasy%20grounds")
        outcomes = run([entry], memory)
        assert outcomes[0].reason is SkipReason.SEARCH_LINK

    def test_missing_link(self):
        memory = DedupMemory(current_day=TODAY)
        outcomes = run([make_entry(link=None)], memory)
        assert outcomes[0].reason is SkipReason.NO_LINK

    def test_parse_anomaly_is_skipped(self):
        memory = DedupMemory(current_day=TODAY)
        entries = [ListingEntry(text="Header row without a date\n", link=LINK), make_entry()]
        outcomes = run(entries, memory)
        assert outcomes[0].reason is SkipReason.PARSE_ANOMALY
        assert isinstance(outcomes[1], Kept)

    def test_empty_row(self):
        memory = DedupMemory(current_day=TODAY)
        outcomes = run([ListingEntry(text="\n  \n", link=None)], memory)
        assert outcomes[0].reason is SkipReason.EMPTY

    def test_is_lazy(self):
        memory = DedupMemory(current_day=TODAY)
        outcomes = process_entries([make_entry(), make_entry(title="Other")], memory, TODAY)
        next(outcomes)
        assert "Other" not in memory


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
