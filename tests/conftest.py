from contextlib import contextmanager
from datetime import datetime, timedelta

import pytest

from pynetlogon import CollectionError, NetlogonConfig


NOW = datetime(2026, 10, 18, 12, 0, 0)


class FakeLog:
    """Stands in for a RemoteLog: fixed mtime and line list."""

    def __init__(self, mtime, lines):
        self.mtime = mtime
        self.lines = lines
        self.reads = 0

    def get_mtime(self):
        return self.mtime

    def read_lines(self, max_lines):
        self.reads += 1
        if max_lines < 0:
            return self.lines[max_lines:]
        return self.lines[:max_lines]


class FakeReader:
    """Maps host names to FakeLogs; unknown hosts are unreachable."""

    def __init__(self, logs):
        self.logs = logs
        self.opened = []

    @contextmanager
    def open(self, host):
        self.opened.append(host)
        if host not in self.logs:
            raise CollectionError(f"{host}: unreachable")
        yield self.logs[host]


def format_line(when, ip, client="WKS01", domain="CONTOSO", user="jdoe",
                error="NO_CLIENT_SITE:"):
    return f"{when:%m/%d %H:%M:%S} [1234] {client} {domain} {error} {user} {ip}"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_line():
    return format_line


@pytest.fixture
def days_ago(now):
    def _days_ago(days, hours=0):
        return now - timedelta(days=days, hours=hours)
    return _days_ago


@pytest.fixture
def config(tmp_path):
    return NetlogonConfig(export_path=str(tmp_path), days=7, log_max_lines=-250)


@pytest.fixture
def fake_log():
    return FakeLog


@pytest.fixture
def fake_reader():
    return FakeReader
