from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from campus_sync import main as main_module
from campus_sync.config import MissingConfigurationError, SyncConfig


@dataclass
class FakeApp:
    calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    error: Exception | None = None
    shutdowns: int = 0

    async def sync_all(self, **kwargs: object) -> None:
        self._record("sync_all", kwargs)

    async def sync_kind(self, kind: str, **kwargs: object) -> None:
        self._record("sync_kind", {"kind": kind, **kwargs})

    async def clean_obviated(self, age_threshold_days: int | None = None) -> None:
        self._record("clean_obviated", {"age_threshold_days": age_threshold_days})

    async def shutdown(self) -> None:
        self.shutdowns += 1

    def _record(self, name: str, kwargs: dict[str, object]) -> None:
        self.calls.append((name, kwargs))
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_app(monkeypatch: pytest.MonkeyPatch) -> FakeApp:
    app = FakeApp()
    monkeypatch.delenv("CAMPUS_SYNC_VERBOSE", raising=False)
    monkeypatch.setattr(main_module, "load_dotenv", lambda: None)
    monkeypatch.setattr(main_module, "sync_all", app.sync_all)
    monkeypatch.setattr(main_module, "sync_kind", app.sync_kind)
    monkeypatch.setattr(main_module, "clean_obviated", app.clean_obviated)
    monkeypatch.setattr(main_module, "shutdown", app.shutdown)
    return app


def test_sync_defaults(fake_app: FakeApp) -> None:
    main_module.main(["sync"])

    ((name, kwargs),) = fake_app.calls
    assert name == "sync_all"
    assert kwargs["school"] is None
    config = kwargs["config"]
    assert isinstance(config, SyncConfig)
    assert config.verbose
    assert fake_app.shutdowns == 1


def test_sync_single_kind_quietly(fake_app: FakeApp) -> None:
    main_module.main(["sync", "--school", "acme", "--kind", "courses", "--quiet"])

    ((name, kwargs),) = fake_app.calls
    assert name == "sync_kind"
    assert kwargs["kind"] == "courses"
    assert kwargs["school"] == "acme"
    config = kwargs["config"]
    assert isinstance(config, SyncConfig)
    assert not config.verbose


def test_clean_passes_threshold(fake_app: FakeApp) -> None:
    main_module.main(["clean", "--days", "10"])

    assert fake_app.calls == [("clean_obviated", {"age_threshold_days": 10})]
    assert fake_app.shutdowns == 1


@pytest.mark.parametrize(
    "argv",
    [
        ["sync", "--school", "not a code!"],
        ["clean", "--days", "-1"],
        ["sync", "--kind", "lectures"],
        [],
    ],
)
def test_invalid_arguments_exit_before_running(fake_app: FakeApp, argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(argv)

    assert excinfo.value.code == 2
    assert fake_app.calls == []
    assert fake_app.shutdowns == 0


def test_configuration_errors_exit_with_usage_code(
    fake_app: FakeApp, capsys: pytest.CaptureFixture[str]
) -> None:
    fake_app.error = MissingConfigurationError("Missing configuration for: WORDPRESS_BASE_URL")

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["sync"])

    assert excinfo.value.code == 2
    assert "WORDPRESS_BASE_URL" in capsys.readouterr().err
    assert fake_app.shutdowns == 1


def test_failed_runs_exit_with_error_code(
    fake_app: FakeApp, capsys: pytest.CaptureFixture[str]
) -> None:
    fake_app.error = RuntimeError("courses synchronization failed: boom")

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["sync"])

    assert excinfo.value.code == 1
    assert "boom" in capsys.readouterr().err
    assert fake_app.shutdowns == 1
