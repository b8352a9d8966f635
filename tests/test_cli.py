import asyncio
import json
import os
from contextlib import asynccontextmanager

import pytest

import cli
from puppet_scraper.storage import DatasetStore

DATASET = '{"items":[{"id":1},{"id":2},{"id":3}]}'


class FakePage:
    async def close(self) -> None:
        pass


class FakeBrowser:
    def __init__(self) -> None:
        self.opened = 0

    async def new_page(self) -> FakePage:
        self.opened += 1
        return FakePage()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.setattr(os, "environ", {k: v for k, v in os.environ.items() if not k.startswith("PS_")})
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "configure_logging", lambda *_, **__: None)
    (tmp_path / "input.json").write_text(DATASET)
    (tmp_path / "enrich.py").write_text(
        "async def scrape(page, item):\n"
        "    if item['id'] == 99:\n"
        "        raise RuntimeError('boom')\n"
        "    return {'seen': True}\n"
    )
    return tmp_path


def use_browser(monkeypatch, browser):
    launches = []

    @asynccontextmanager
    async def fake_launch(**kwargs):
        launches.append(kwargs)
        yield browser

    monkeypatch.setattr(cli, "launch_browser", fake_launch)
    return launches


def parse(*argv):
    return cli.build_parser().parse_args(["scrape", *argv])


def test_scrape_with_limit_then_resume(workspace, monkeypatch):
    browser = FakeBrowser()
    launches = use_browser(monkeypatch, browser)
    args = parse("-d", "input.json", "-s", "enrich.py", "-q", "$.items[*]", "-w", "0", "-l", "2")

    assert asyncio.run(cli.scrape_command(args)) == 0
    assert (workspace / "output.json").read_text() == '{"items":[{"id":1,"seen":true},{"id":2,"seen":true},{"id":3}]}'
    assert json.loads((workspace / ".enrich.progress.json").read_text()) == {"step": 2}
    assert launches == [{"headful": False, "browser_name": "chromium"}]

    args = parse("-d", "input.json", "-s", "enrich.py", "-q", "$.items[*]", "-w", "0", "--pretty")
    assert asyncio.run(cli.scrape_command(args)) == 0
    output = (workspace / "output.json").read_text()
    assert output.startswith("{\n  ")
    assert all(item["seen"] for item in json.loads(output)["items"])
    assert not (workspace / ".enrich.progress.json").exists()
    assert browser.opened == 3


def test_handler_failure_exits_non_zero(workspace, monkeypatch, caplog):
    (workspace / "input.json").write_text('{"items":[{"id":1},{"id":99},{"id":3}]}')
    use_browser(monkeypatch, FakeBrowser())
    caplog.set_level("ERROR")

    args = parse("-d", "input.json", "-s", "enrich.py", "-q", "$.items[*]", "-w", "0")
    assert asyncio.run(cli.scrape_command(args)) == 1

    assert json.loads((workspace / ".enrich.progress.json").read_text()) == {"step": 1}
    assert json.loads((workspace / "output.json").read_text())["items"][1] == {"id": 99}
    assert any("boom" in record.getMessage() for record in caplog.records)


def test_dry_run_skips_browser(workspace, monkeypatch):
    @asynccontextmanager
    async def no_browser(**_kwargs):
        raise AssertionError("dry run must not launch a browser")
        yield

    monkeypatch.setattr(cli, "launch_browser", no_browser)
    args = parse("-d", "input.json", "-s", "enrich.py", "-q", "$.items[*]", "--dryrun")

    assert asyncio.run(cli.scrape_command(args)) == 0
    assert not (workspace / "output.json").exists()
    assert not (workspace / ".enrich.progress.json").exists()
    assert (workspace / "input.json").read_text() == DATASET


def test_custom_output_path(workspace, monkeypatch):
    use_browser(monkeypatch, FakeBrowser())
    args = parse("-d", "input.json", "-s", "enrich.py", "-q", "$.items[0]", "-w", "0", "-o", "out/result.json")
    assert asyncio.run(cli.scrape_command(args)) == 0
    assert json.loads((workspace / "out" / "result.json").read_text())["items"][0] == {"id": 1, "seen": True}


def test_main_reports_bad_query(workspace, monkeypatch):
    use_browser(monkeypatch, FakeBrowser())
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["scrape", "-d", "input.json", "-s", "enrich.py", "-q", "items[*"])
    assert excinfo.value.code == 1
    assert not (workspace / "output.json").exists()


def test_negative_limit_is_rejected():
    with pytest.raises(SystemExit):
        parse("-d", "input.json", "-s", "enrich.py", "-l", "-3")


@pytest.mark.parametrize("name, value", [("PS_DELAY_MS", "abc"), ("PS_LIMIT", "-1")])
def test_bad_environment_config_exits_non_zero(workspace, monkeypatch, caplog, name, value):
    monkeypatch.setenv(name, value)
    use_browser(monkeypatch, FakeBrowser())
    caplog.set_level("ERROR")

    args = parse("-d", "input.json", "-s", "enrich.py", "-q", "$.items[*]")
    assert asyncio.run(cli.scrape_command(args)) == 1
    assert not (workspace / "output.json").exists()
    assert any("Invalid configuration" in record.getMessage() for record in caplog.records)


def test_write_failure_exits_non_zero(workspace, monkeypatch, caplog):
    def disk_full(self, document=None):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(DatasetStore, "persist", disk_full)
    use_browser(monkeypatch, FakeBrowser())
    caplog.set_level("ERROR")

    args = parse("-d", "input.json", "-s", "enrich.py", "-q", "$.items[*]", "-w", "0")
    assert asyncio.run(cli.scrape_command(args)) == 1
    assert not (workspace / ".enrich.progress.json").exists()
    assert any("No space left on device" in record.getMessage() for record in caplog.records)
