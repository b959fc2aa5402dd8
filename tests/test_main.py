"""Tests for the command line entry point."""

import io
import sys
import tempfile
import unittest
from datetime import date, timedelta
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from tracking.ledger import Ledger, LedgerStore, Segment, ensure_day
from tracking.timeutils import day_key


class TestCommands(unittest.TestCase):
    """Each subcommand against a temp ledger file."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "ledger.json"
        self.store = LedgerStore(self.path)

    def tearDown(self):
        self.tmpdir.cleanup()

    def run_main(self, *argv):
        with patch("sys.stdout", new_callable=io.StringIO) as out:
            code = main.main(["--ledger", str(self.path)] + list(argv))
        return code, out.getvalue()

    def test_goal(self):
        code, output = self.run_main("goal", "150")
        self.assertEqual(code, 0)
        self.assertIn("2h 30m", output)
        self.assertEqual(self.store.load().daily_goal_minutes, 150)

    def test_invalid_goal(self):
        code, _ = self.run_main("goal", "0")
        self.assertEqual(code, 1)
        self.assertEqual(self.store.load().daily_goal_minutes, 120)

    def test_category(self):
        self.run_main("category", "Reading")
        code, output = self.run_main("category", "Work")
        self.assertEqual(code, 0)
        self.assertIn("Reading, Work", output)

    def test_day_timeline_for_today(self):
        ledger = Ledger(categories=["Work"])
        buckets = ensure_day(ledger, day_key(date.today()))
        buckets[9].segments.append(Segment(15, 45, "Work"))
        self.store.save(ledger)
        code, output = self.run_main("day")
        self.assertEqual(code, 0)
        lines = output.strip().splitlines()
        self.assertEqual(len(lines), 25)
        self.assertEqual(lines[0], "Today: 0h 45m of 2h 0m (in progress)")
        self.assertEqual(lines[10], "09:00 | :15 45m Work")
        self.assertEqual(lines[1], "00:00 | -")

    def test_day_timeline_past_day_is_read_only(self):
        yesterday = day_key(date.today() - timedelta(days=1))
        code, output = self.run_main("day", "--offset", "-1")
        self.assertEqual(code, 0)
        self.assertTrue(output.startswith("Yesterday: 0h 0m of 2h 0m (goal missed)"))
        self.assertNotIn(yesterday, self.store.load().days)

    def test_day_timeline_does_not_move_past_today(self):
        code, output = self.run_main("day", "--offset", "3")
        self.assertEqual(code, 0)
        self.assertTrue(output.startswith("Today:"))

    def test_stats_week_includes_today(self):
        ledger = Ledger(categories=["Work"])
        ensure_day(ledger, day_key(date.today()))[9].segments.append(Segment(0, 45, "Work"))
        self.store.save(ledger)
        code, output = self.run_main("stats")
        self.assertEqual(code, 0)
        self.assertEqual(len(output.strip().splitlines()), 8)
        self.assertTrue(output.strip().endswith("0h 45m"))

    def test_stats_year(self):
        code, output = self.run_main("stats", "--range", "year", "--offset", "-1")
        self.assertEqual(code, 0)
        self.assertIn(f"{date.today().year - 1}: 0h 0m", output)

    def test_heatmap_and_hours(self):
        code, output = self.run_main("heatmap", "--year", "2024")
        self.assertEqual(code, 0)
        self.assertIn("Heatmap 2024", output)
        code, output = self.run_main("hours")
        self.assertEqual(code, 0)
        self.assertEqual(len(output.strip().splitlines()), 24)

    def test_streak(self):
        code, output = self.run_main("streak")
        self.assertEqual(code, 0)
        self.assertIn("Current streak: 0 day(s)", output)

    def test_start_runs_session_with_ticks(self):
        with patch("main.time.sleep"):
            code, output = self.run_main("start", "--category", "Work", "--minutes", "1")
        self.assertEqual(code, 0)
        ledger = self.store.load()
        self.assertEqual(ledger.categories, ["Work"])
        self.assertEqual(ledger.session_count, 1)


class TestSoundPlayback(unittest.TestCase):
    """Player processes are kept and reaped once finished."""

    def tearDown(self):
        main._players.clear()

    def test_finished_players_are_reaped(self):
        finished, playing = MagicMock(), MagicMock()
        finished.poll.return_value = 0
        playing.poll.return_value = None
        with patch("main.subprocess.Popen", side_effect=[finished, playing, MagicMock()]) as popen:
            main.play_sound_file(Path("a.mp3"))
            main.play_sound_file(Path("b.mp3"))
            self.assertEqual(main._players, [playing])
            main.play_sound_file(Path("c.mp3"))
        self.assertEqual(popen.call_count, 3)
        self.assertEqual(len(main._players), 2)
        self.assertIs(main._players[0], playing)


if __name__ == "__main__":
    unittest.main()
