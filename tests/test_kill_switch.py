from pathlib import Path
import pytest
from taskpilot.config import Settings, General, Security, LLM, Memory
from taskpilot.tools.files import safe_write_text
from taskpilot.tools.shell import run_command
from taskpilot.security.kill import KillSwitchEngaged, engage_kill, clear_kill, kill_engaged

def _settings(tmp_path: Path) -> Settings:
    return Settings(
        general=General(profile="safe", dry_run=False, workspace_path=str(tmp_path/"ws"),
                        log_dir=str(tmp_path/"logs"), kill_switch_path=str(tmp_path/"kill"), step_delay_sec=0),
        security=Security(chain_secret=""),
        llm=LLM(),
        memory=Memory(db_path=str(tmp_path/"mem.db")),
    )

def test_kill_file_blocks_tools(tmp_path: Path):
    s = _settings(tmp_path)
    engage_kill(s.general.kill_switch_path)
    with pytest.raises(KillSwitchEngaged):
        safe_write_text(s, "x.txt", "hello")
    with pytest.raises(KillSwitchEngaged):
        run_command(s, "echo hello")

def test_engage_and_clear(tmp_path: Path):
    p = tmp_path / "k" / "kill.switch"
    assert not kill_engaged(p)
    engage_kill(p)
    assert kill_engaged(p)
    assert clear_kill(p) is True
    assert clear_kill(p) is False
    assert kill_engaged(None) is False
