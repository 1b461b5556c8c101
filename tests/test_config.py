"""Tests for pick-harness config."""

from pathlib import Path

import yaml

from pick_harness.config import ChatSpec, HarnessConfig, ServiceSpec, load_config


class TestDefaults:
    def test_service(self):
        s = ServiceSpec()
        assert s.url == "http://localhost:11434"
        assert s.timeout == 120

    def test_chat(self):
        c = ChatSpec()
        assert c.model == "llama3"
        assert c.retries == 3

    def test_harness(self):
        cfg = HarnessConfig()
        assert cfg.algorithm == "fewshot"
        assert cfg.runs == 1
        assert cfg.chat.model == "llama3"


class TestLoadConfig:
    def test_defaults_when_no_file(self, tmp_path):
        cfg = load_config(tmp_path / "does_not_exist.yaml")
        assert cfg == HarnessConfig()

    def test_full_file(self, tmp_path: Path):
        path = tmp_path / "pick_harness.yaml"
        path.write_text(yaml.dump({
            "service": {"url": "http://gpu-box:11434", "timeout": 30},
            "chat": {"model": "mistral", "retries": 5},
            "algorithm": "fewshot",
            "runs": 4,
        }))

        cfg = load_config(path)

        assert cfg.service.url == "http://gpu-box:11434"
        assert cfg.service.timeout == 30
        assert cfg.chat.model == "mistral"
        assert cfg.chat.retries == 5
        assert cfg.runs == 4

    def test_partial_sections_keep_defaults(self, tmp_path: Path):
        path = tmp_path / "c.yaml"
        path.write_text(yaml.dump({"chat": {"model": "phi3"}}))

        cfg = load_config(path)

        assert cfg.chat.model == "phi3"
        assert cfg.chat.retries == 3
        assert cfg.service == ServiceSpec()

    def test_unknown_keys_ignored(self, tmp_path: Path):
        path = tmp_path / "c.yaml"
        path.write_text(yaml.dump({"chat": {"model": "phi3", "colour": "blue"}}))

        cfg = load_config(path)

        assert cfg.chat == ChatSpec(model="phi3")

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == HarnessConfig()

    def test_search_path_in_cwd(self, tmp_path: Path, monkeypatch):
        (tmp_path / "pick_harness.yaml").write_text(yaml.dump({"runs": 2}))
        monkeypatch.chdir(tmp_path)

        assert load_config().runs == 2
