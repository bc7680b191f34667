import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from aigamer_agent.control import LoopControl
from aigamer_os.config import LoopConfig, load_configs


class LoadConfigsTest(unittest.TestCase):
    def test_defaults_when_missing_file(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            config = load_configs(Path("nonexistent.yaml"))

        self.assertEqual(config.ai.provider, "Ollama")
        self.assertEqual(config.ai.ollama.api_endpoint, "http://localhost:11434")
        self.assertEqual(config.ai.anthropic.api_key, "")
        self.assertEqual(config.window.title_keywords, ["Warsim", "Aslona"])
        self.assertEqual(config.capture.output_dir, Path("captures"))
        self.assertEqual(config.capture.max_dimension, 1600)
        self.assertEqual(config.loop.default_delay_ms, 2000)
        self.assertEqual(config.loop.min_delay_ms, 500)
        self.assertEqual(config.loop.max_delay_ms, 30000)
        self.assertEqual(config.loop.max_retries, 3)
        self.assertEqual(config.agent.max_history_messages, 20)
        self.assertAlmostEqual(config.agent.temperature, 0.7)
        self.assertEqual(config.agent.max_tokens, 150)
        self.assertEqual(config.agent.logs_dir, Path("logs"))

    def test_overrides_apply(self) -> None:
        yaml_content = """
AI:
  Provider: Anthropic
  Anthropic:
    ApiKey: sk-test
    Model: claude-test
  ollama:
    api_endpoint: http://gpu-box:11434/api/generate
    vision_model: llava:13b
window:
  process_name: Dwarfs
  title_keywords: Fortress
capture:
  output_dir: temp_captures
  save_captures: true
  max_dimension: 1200
  validation:
    min_luminance_stddev: 2
  retention:
    max_captures: 20
loop:
  default_delay_ms: 3000
  max_retries: 5
  retry_pause_s: 0.25
agent:
  max_history_messages: 10
  request_timeout_s: 15
"""
        with tempfile.TemporaryDirectory() as tmpdir:
            cfg_path = Path(tmpdir) / "config.yaml"
            cfg_path.write_text(yaml_content, encoding="utf-8")

            with mock.patch.dict(os.environ, {}, clear=True):
                config = load_configs(cfg_path)

        self.assertEqual(config.ai.provider, "Anthropic")
        self.assertEqual(config.ai.anthropic.api_key, "sk-test")
        self.assertEqual(config.ai.anthropic.model, "claude-test")
        self.assertEqual(config.ai.anthropic.vision_model, "claude-haiku-4-5")
        self.assertEqual(config.ai.ollama.api_endpoint, "http://gpu-box:11434/api/generate")
        self.assertEqual(config.ai.ollama.vision_model, "llava:13b")
        self.assertIs(config.ai.for_provider(), config.ai.anthropic)
        self.assertEqual(config.window.process_name, "Dwarfs")
        self.assertEqual(config.window.title_keywords, ["Fortress"])
        self.assertEqual(config.capture.output_dir, Path("temp_captures"))
        self.assertTrue(config.capture.save_captures)
        self.assertEqual(config.capture.max_dimension, 1200)
        self.assertAlmostEqual(config.capture.validation.min_luminance_stddev, 2.0)
        self.assertEqual(config.capture.retention.max_captures, 20)
        self.assertEqual(config.loop.default_delay_ms, 3000)
        self.assertEqual(config.loop.max_retries, 5)
        self.assertAlmostEqual(config.loop.retry_pause_s, 0.25)
        self.assertEqual(config.agent.max_history_messages, 10)
        self.assertAlmostEqual(config.agent.request_timeout_s, 15.0)

    def test_api_key_falls_back_to_environment(self) -> None:
        with mock.patch.dict(os.environ, {"ANTHROPIC_API_KEY": "from-env"}, clear=True):
            config = load_configs(Path("nonexistent.yaml"))

        self.assertEqual(config.ai.anthropic.api_key, "from-env")
        self.assertEqual(config.ai.openai.api_key, "")

    def test_unknown_provider_lookup_raises(self) -> None:
        config = load_configs(Path("nonexistent.yaml"))
        config.ai.provider = "Mystery"
        with self.assertRaises(KeyError):
            config.ai.for_provider()

    def test_invalid_delay_bounds_rejected(self) -> None:
        with self.assertRaises(ValueError):
            LoopConfig(min_delay_ms=5000, max_delay_ms=1000)

        with tempfile.TemporaryDirectory() as tmpdir:
            cfg_path = Path(tmpdir) / "config.yaml"
            cfg_path.write_text("loop:\n  min_delay_ms: 40000\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_configs(cfg_path)

    def test_delay_range_cannot_be_widened(self) -> None:
        with self.assertRaises(ValueError):
            LoopConfig(min_delay_ms=0)
        with self.assertRaises(ValueError):
            LoopConfig(max_delay_ms=60000)

        with tempfile.TemporaryDirectory() as tmpdir:
            cfg_path = Path(tmpdir) / "config.yaml"
            cfg_path.write_text("loop:\n  min_delay_ms: 0\n  default_delay_ms: 100\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_configs(cfg_path)

    def test_default_delay_is_clamped_into_range(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            cfg_path = Path(tmpdir) / "config.yaml"
            cfg_path.write_text("loop:\n  default_delay_ms: 100\n", encoding="utf-8")
            config = load_configs(cfg_path)

        self.assertEqual(config.loop.default_delay_ms, 500)

        control = LoopControl(config.loop)
        for _ in range(5):
            control.speed_up()
        self.assertEqual(control.delay_ms, 500)

        self.assertEqual(LoopConfig(default_delay_ms=90000).default_delay_ms, 30000)


if __name__ == "__main__":
    unittest.main()
