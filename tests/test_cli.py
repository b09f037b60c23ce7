"""Tests for the cdi-hook CLI."""

import json
import os
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from cdihook.cli import Apply, Show, main, rootfs_lock, run_apply, show_plan
from cdihook.config import HookSettings, clear_settings_instance, get_settings
from cdihook.errors import HookNotFoundError, LdconfigError


@pytest.fixture(autouse=True)
def cleanup(monkeypatch):
    monkeypatch.delenv("LXC_ROOTFS_MOUNT", raising=False)
    monkeypatch.delenv("CDIHOOK_CONFIG_DIR", raising=False)
    clear_settings_instance()
    yield
    clear_settings_instance()


@pytest.fixture
def rootfs(tmp_path: Path) -> Path:
    root = tmp_path / "rootfs"
    root.mkdir()
    return root


@pytest.fixture
def plan_file(tmp_path: Path) -> Path:
    path = tmp_path / "gpu_cdi_hooks.json"
    path.write_text(
        json.dumps(
            {
                "container_rootfs": "/c1",
                "ld_cache_updates": ["/usr/lib/x"],
                "symlinks": [{"target": "/usr/lib/libfoo.so", "link": "/usr/lib/x/libfoo.so"}],
            }
        )
    )
    return path


class TestRunApply:
    @patch("cdihook.cli.apply_hooks_to_container")
    def test_applies_with_given_rootfs(self, mock_apply: Mock, plan_file: Path, rootfs: Path) -> None:
        settings = HookSettings()

        run_apply(Apply(hooks_file=plan_file, rootfs=rootfs), settings)

        mock_apply.assert_called_once_with(plan_file, rootfs, settings)

    @patch("cdihook.cli.apply_hooks_to_container")
    def test_rootfs_from_lxc_env(self, mock_apply: Mock, plan_file: Path, rootfs: Path, monkeypatch) -> None:
        monkeypatch.setenv("LXC_ROOTFS_MOUNT", str(rootfs))

        run_apply(Apply(hooks_file=plan_file), HookSettings())

        assert mock_apply.call_args[0][1] == rootfs

    def test_no_rootfs(self, plan_file: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_apply(Apply(hooks_file=plan_file), HookSettings())

        assert exc_info.value.code == 1
        assert "LXC_ROOTFS_MOUNT" in capsys.readouterr().err

    @patch("cdihook.cli.apply_hooks_to_container")
    def test_error_exits_nonzero(self, mock_apply: Mock, plan_file: Path, rootfs: Path, capsys) -> None:
        mock_apply.side_effect = LdconfigError(
            "Failed running ldconfig", command=["/sbin/ldconfig"], returncode=1, output="boom"
        )

        with pytest.raises(SystemExit) as exc_info:
            run_apply(Apply(hooks_file=plan_file, rootfs=rootfs), HookSettings())

        assert exc_info.value.code == 1
        assert "boom" in capsys.readouterr().err

    def test_missing_rootfs(self, plan_file: Path, tmp_path: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_apply(Apply(hooks_file=plan_file, rootfs=tmp_path / "gone"), HookSettings())

        assert exc_info.value.code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_without_lock_applies_symlinks(self, tmp_path: Path, rootfs: Path) -> None:
        plan = tmp_path / "plan.json"
        plan.write_text(json.dumps({"symlinks": [{"target": "libfoo.so.1", "link": "/usr/lib/libfoo.so"}]}))

        run_apply(Apply(hooks_file=plan, rootfs=rootfs, lock=False), HookSettings())

        assert os.readlink(rootfs / "usr/lib/libfoo.so") == "libfoo.so.1"


class TestRootfsLock:
    def test_lock_and_release(self, rootfs: Path) -> None:
        with rootfs_lock(rootfs):
            pass
        # Released: can be taken again
        with rootfs_lock(rootfs):
            pass

    def test_missing_rootfs(self, tmp_path: Path) -> None:
        with pytest.raises(HookNotFoundError):
            with rootfs_lock(tmp_path / "missing"):
                pass

    def test_releases_on_error(self, rootfs: Path) -> None:
        with pytest.raises(RuntimeError):
            with rootfs_lock(rootfs):
                raise RuntimeError("boom")
        with rootfs_lock(rootfs):
            pass


class TestShowPlan:
    def test_json_output(self, plan_file: Path, capsys) -> None:
        show_plan(Show(hooks_file=plan_file, json=True))

        data = json.loads(capsys.readouterr().out)
        assert data["ld_cache_updates"] == ["/usr/lib/x"]
        assert data["symlinks"] == [{"target": "/usr/lib/libfoo.so", "link": "/usr/lib/x/libfoo.so"}]

    def test_table_output(self, plan_file: Path, capsys) -> None:
        show_plan(Show(hooks_file=plan_file))

        out = capsys.readouterr().out
        assert "Symlinks" in out
        assert "../libfoo.so" in out
        assert "/usr/lib/x" in out

    def test_missing_plan(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            show_plan(Show(hooks_file=tmp_path / "missing.json"))

        assert exc_info.value.code == 1


class TestMain:
    @patch("cdihook.cli.run_apply")
    def test_dispatch_apply(self, mock_run_apply: Mock, plan_file: Path, rootfs: Path) -> None:
        cmd = Apply(hooks_file=plan_file, rootfs=rootfs)

        main(cmd)

        mock_run_apply.assert_called_once_with(cmd, get_settings())

    @patch("cdihook.cli.show_plan")
    def test_dispatch_show(self, mock_show: Mock, plan_file: Path) -> None:
        cmd = Show(hooks_file=plan_file)

        main(cmd)

        mock_show.assert_called_once_with(cmd)

    @patch("cdihook.cli.run_apply")
    def test_config_file_becomes_global(self, mock_run_apply: Mock, plan_file: Path, tmp_path: Path) -> None:
        config = tmp_path / "cdihook.yaml"
        config.write_text("cdihook:\n  ldconfig_path: /usr/sbin/ldconfig\n")

        main(Apply(hooks_file=plan_file), config=config)

        settings = mock_run_apply.call_args[0][1]
        assert settings.ldconfig_path == "/usr/sbin/ldconfig"
        assert get_settings() is settings

    def test_bad_config_file(self, plan_file: Path, tmp_path: Path) -> None:
        config = tmp_path / "cdihook.yaml"
        config.write_text("cdihook: [unclosed\n")

        with pytest.raises(SystemExit) as exc_info:
            main(Show(hooks_file=plan_file), config=config)

        assert exc_info.value.code == 1
