# tests/test_main.py
"""
Тесты выбора режима запуска (main.py).
"""

from __future__ import annotations

import pytest

import main


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Подменяет все runner-ы заглушками, записывающими свой режим."""
    recorded: list[str] = []

    for mode in list(main.RUNNERS):
        async def fake_runner(mode: str = mode) -> None:
            recorded.append(mode)

        monkeypatch.setitem(main.RUNNERS, mode, fake_runner)
    return recorded


class TestMain:
    """main.main"""

    @pytest.mark.asyncio
    async def test_unknown_mode_exits(self, calls: list[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            await main.main(mode="billing")

        assert exc_info.value.code == 2
        assert calls == []

    @pytest.mark.asyncio
    async def test_single_mode(self, calls: list[str]) -> None:
        await main.main(mode="worker")
        assert calls == ["worker"]

    @pytest.mark.asyncio
    async def test_all_runs_every_component(self, calls: list[str]) -> None:
        await main.main(mode="all")
        assert sorted(calls) == sorted(main.RUNNERS)

    @pytest.mark.asyncio
    async def test_mode_from_settings(self, calls: list[str], monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(main.settings.system, "COMPONENT_MODE", "shipments")

        await main.main()

        assert calls == ["shipments"]

    def test_valid_modes_match_runners(self) -> None:
        assert set(main.VALID_MODES) == set(main.RUNNERS) | {"all"}
