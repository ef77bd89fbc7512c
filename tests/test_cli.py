import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from fakes import FakePagedApi, make_users
from user_ingestion import cli


class TestCli(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.addCleanup(self._td.cleanup)
        self.root = Path(self._td.name)
        self.out = self.root / "user_data.json"
        self.ckpt = self.root / "done"

        env = {
            "API_URL": "https://api.example.com/users?limit=2",
            "RATE_LIMIT_DELAY_MS": "0",
            "ERROR_BACKOFF_MS": "0",
            "CHECKPOINT_DIR": str(self.ckpt),
            "OUTPUT_FILE": str(self.out),
        }
        patcher = mock.patch.dict(os.environ, env, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)
        dotenv = mock.patch.object(cli, "load_dotenv")
        dotenv.start()
        self.addCleanup(dotenv.stop)

    def _with_api(self, api):
        p = mock.patch.object(cli, "build_client", return_value=api)
        p.start()
        self.addCleanup(p.stop)
        return api

    def test_run_writes_checkpoints_and_output(self):
        api = self._with_api(FakePagedApi({0: make_users(0, 2), 2: requests.ConnectionError("x"), 4: make_users(4, 2)}))

        code = cli.main(["run", "--total", "5", "--batch-size", "2"])

        self.assertEqual(code, 0)
        self.assertEqual(api.offsets, [0, 2, 4])
        self.assertTrue(api.closed)
        obj = json.loads(self.out.read_text(encoding="utf-8"))
        self.assertEqual(obj["total_users"], 4)
        self.assertEqual([u["id"] for u in obj["users"]], [0, 1, 4, 5])
        self.assertEqual(sorted(p.name for p in self.ckpt.iterdir()), ["0.json", "4.json"])

    def test_flags_override_environment(self):
        api = self._with_api(FakePagedApi({0: make_users(0, 3)}))
        other = self.root / "other.json"

        code = cli.main(["run", "--total", "3", "--batch-size", "3", "--output", str(other), "--checkpoint-dir", str(self.root / "c")])

        self.assertEqual(code, 0)
        self.assertTrue(other.exists())
        self.assertFalse(self.out.exists())
        self.assertTrue((self.root / "c" / "0.json").exists())
        self.assertEqual(api.calls, [{"offset": 0}])

    def test_zero_target_still_writes_envelope(self):
        api = self._with_api(FakePagedApi({}))

        code = cli.main(["run", "--total", "0"])

        self.assertEqual(code, 0)
        self.assertEqual(api.calls, [])
        self.assertEqual(json.loads(self.out.read_text(encoding="utf-8"))["total_users"], 0)

    def test_missing_api_url_fails_before_requests(self):
        api = self._with_api(FakePagedApi({0: make_users(0, 2)}))
        del os.environ["API_URL"]

        self.assertEqual(cli.main(["run"]), cli.EXIT_CONFIG)
        self.assertEqual(api.calls, [])

    def test_invalid_override_is_a_config_error(self):
        self._with_api(FakePagedApi({}))
        self.assertEqual(cli.main(["run", "--batch-size", "0"]), cli.EXIT_CONFIG)

    def test_delay_longer_than_backoff_is_rejected(self):
        api = self._with_api(FakePagedApi({0: make_users(0, 2)}))

        code = cli.main(["run", "--total", "2", "--batch-size", "2", "--delay-ms", "9000"])

        self.assertEqual(code, cli.EXIT_CONFIG)
        self.assertEqual(api.calls, [])
        self.assertFalse(self.out.exists())

    def test_interrupt_exits_130(self):
        api = self._with_api(FakePagedApi({0: make_users(0, 2)}))

        with mock.patch.object(cli, "run_ingestion", side_effect=KeyboardInterrupt):
            code = cli.main(["run", "--total", "2", "--batch-size", "2"])

        self.assertEqual(code, cli.EXIT_INTERRUPTED)
        self.assertTrue(api.closed)

    def test_log_level_comes_from_settings(self):
        self._with_api(FakePagedApi({0: make_users(0, 2)}))
        os.environ["LOG_LEVEL"] = "DEBUG"

        with mock.patch.object(cli, "configure_logging") as configure:
            cli.main(["run", "--total", "2", "--batch-size", "2"])

        configure.assert_called_once_with("DEBUG")

    def test_checkpoint_failure_is_fatal(self):
        self.ckpt.write_text("not a directory", encoding="utf-8")
        self._with_api(FakePagedApi({0: make_users(0, 2)}))

        self.assertEqual(cli.main(["run", "--total", "2", "--batch-size", "2"]), cli.EXIT_FAILED)
        self.assertFalse(self.out.exists())

    def test_validate(self):
        self._with_api(FakePagedApi({0: make_users(0, 2), 2: {"error": "nope"}, 4: requests.Timeout("slow")}))

        self.assertEqual(cli.main(["validate"]), cli.EXIT_OK)
        self.assertEqual(cli.main(["validate", "--offset", "2"]), cli.EXIT_FAILED)
        self.assertEqual(cli.main(["validate", "--offset", "4"]), cli.EXIT_FAILED)
        self.assertFalse(self.out.exists())
        self.assertFalse(self.ckpt.exists())


if __name__ == "__main__":
    unittest.main()
