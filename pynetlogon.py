#!/usr/bin/env python3
"""
PyNetlogon - NETLOGON "no client site" collector
Collects NETLOGON log entries from every domain controller in an Active
Directory forest and reports the client IP addresses that could not be
mapped to an AD site.

License: MIT
"""

import argparse
import csv
import os
import sys
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Tuple
from dataclasses import dataclass, field
from concurrent.futures import ThreadPoolExecutor, as_completed

from ldap3 import Server, Connection, ALL, NTLM, KERBEROS, SASL, SUBTREE
from ldap3.core.exceptions import LDAPException
from impacket.smbconnection import SMBConnection, SessionError
from impacket.smb3structs import FILE_READ_DATA, FILE_SHARE_READ, FILE_SHARE_WRITE
from impacket.nmb import NetBIOSError
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter


# Constants
VERSION = "v0.1.0"
BANNER = f"""
╔═════════════════════════════════════════════════════════
║  PyNetlogon {VERSION} - NETLOGON No-Client-Site Collector
║  -------------------------------------------------------
║  Finds client subnets missing from AD Sites and Services
╚═════════════════════════════════════════════════════════
"""

DEFAULT_SHARE = "ADMIN$"
DEFAULT_LOG_PATH = "debug\\netlogon.log"
DEFAULT_DATE_FORMAT = "%m/%d %H:%M:%S"
DEFAULT_MARKER = "NO_CLIENT_SITE"
DEFAULT_DAYS = 1
MAX_DAYS = 31
DEFAULT_LOG_MAX_LINES = -250
READ_BLOCK_SIZE = 64 * 1024

# Token positions in a NETLOGON line
MIN_TOKENS = 8
CLIENT_TOKEN = 3
DOMAIN_TOKEN = 4
ERROR_TOKEN = 5
USER_TOKEN = 6
IP_TOKEN = 7

REPORT_PREFIX = "NoClientSiteSubnets"
REPORT_COLUMNS = ["Date", "Client", "User", "Domain", "Error", "IPAddress"]
REPORT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# crossRef systemFlags: FLAG_CR_NTDS_NC | FLAG_CR_NTDS_DOMAIN
DOMAIN_CROSSREF_FILTER = "(&(objectClass=crossRef)(systemFlags:1.2.840.113556.1.4.803:=3))"
SERVER_FILTER = "(objectCategory=server)"

HOST_COLLECTED = "collected"
HOST_SKIPPED = "skipped"
HOST_FAILED = "failed"

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='[%(levelname)s] %(message)s'
)
logger = logging.getLogger('PyNetlogon')


class PyNetlogonError(Exception):
    """Base class for PyNetlogon errors."""


class EnumerationError(PyNetlogonError):
    """The directory could not be queried for domain controllers."""


class CollectionError(PyNetlogonError):
    """A host's NETLOGON log could not be read."""


class LogParseError(PyNetlogonError):
    """A log line does not have the expected shape."""


def _extract_ldap_value(attr):
    """Extract primitive value from ldap3 Attribute object."""
    if hasattr(attr, 'raw_values'):
        return attr.value
    return attr


def safe_str(val, default=''):
    """Safely convert a value to string, handling ldap3 Attribute objects."""
    if val is None:
        return default
    if hasattr(val, 'raw_values'):
        val = val.value
    if val is None:
        return default
    return str(val)


def get_attr(entry, attr_name: str, default=None):
    """Safely get attribute value from LDAP entry."""
    try:
        if hasattr(entry, attr_name):
            attr = getattr(entry, attr_name)
            if attr is not None:
                val = _extract_ldap_value(attr)
                if val is not None:
                    if isinstance(val, list):
                        return val[0] if len(val) == 1 else val
                    return val
    except (IndexError, KeyError, AttributeError):
        pass
    return default


def dn_to_fqdn(dn: str) -> str:
    """Convert Distinguished Name to FQDN."""
    if not dn:
        return ""
    parts = []
    for part in dn.split(','):
        part = part.strip()
        if part.upper().startswith('DC='):
            parts.append(part[3:])
    return '.'.join(parts).lower()


@dataclass(frozen=True)
class LogRecord:
    """One NETLOGON line for a client that could not be mapped to a site."""
    date: datetime
    client: str
    domain: str
    error: str
    user: str
    ip_address: str

    def as_row(self) -> Dict[str, str]:
        return {
            "Date": self.date.strftime(REPORT_DATE_FORMAT),
            "Client": self.client,
            "User": self.user,
            "Domain": self.domain,
            "Error": self.error,
            "IPAddress": self.ip_address,
        }


@dataclass
class HostResult:
    """Outcome of collecting one domain controller's log."""
    host: str
    status: str
    records: List[LogRecord] = field(default_factory=list)
    reason: str = ""
    malformed: int = 0


@dataclass
class NetlogonConfig:
    """Configuration for a collection run."""
    export_path: str
    days: int = DEFAULT_DAYS
    log_max_lines: int = DEFAULT_LOG_MAX_LINES
    domain_controller: str = ""
    domain: str = ""
    username: str = ""
    password: str = ""
    auth_method: str = "ntlm"  # ntlm, kerberos
    use_ssl: bool = False
    port: int = 389
    page_size: int = 500
    hosts: List[str] = field(default_factory=list)
    share: str = DEFAULT_SHARE
    log_path: str = DEFAULT_LOG_PATH
    date_format: str = DEFAULT_DATE_FORMAT
    marker: str = DEFAULT_MARKER
    threads: int = 1
    timeout: int = 30
    fail_fast: bool = False
    export_xlsx: bool = False


def parse_timestamp(tokens: List[str], date_format: str, now: datetime) -> datetime:
    """Parse the leading tokens of a line with ``date_format``.

    NETLOGON does not log the year. When the format has none, the year of
    ``now`` is assumed and a date more than a day ahead of ``now`` is moved
    back one year.
    """
    width = len(date_format.split())
    text = ' '.join(tokens[:width])
    if '%Y' in date_format or '%y' in date_format:
        return datetime.strptime(text, date_format)
    timestamp = datetime.strptime(f"{now.year} {text}", f"%Y {date_format}")
    if timestamp > now + timedelta(days=1):
        timestamp = timestamp.replace(year=timestamp.year - 1)
    return timestamp


def parse_line(line: str, date_format: str = DEFAULT_DATE_FORMAT,
               now: Optional[datetime] = None) -> LogRecord:
    """Map a NETLOGON line onto a LogRecord by token position."""
    if now is None:
        now = datetime.now()
    tokens = line.split()
    if len(tokens) < MIN_TOKENS:
        raise LogParseError(f"expected at least {MIN_TOKENS} tokens, got {len(tokens)}: {line!r}")
    try:
        timestamp = parse_timestamp(tokens, date_format, now)
    except ValueError as e:
        raise LogParseError(f"bad timestamp in {line!r}: {e}") from e

    return LogRecord(
        date=timestamp,
        client=tokens[CLIENT_TOKEN],
        domain=tokens[DOMAIN_TOKEN],
        error=tokens[ERROR_TOKEN],
        user=tokens[USER_TOKEN],
        ip_address=tokens[IP_TOKEN],
    )


def scan_lines(lines: List[str], cutoff: datetime, date_format: str = DEFAULT_DATE_FORMAT,
               marker: str = DEFAULT_MARKER, now: Optional[datetime] = None) -> Tuple[List[LogRecord], int]:
    """Scan lines newest first, stopping at the first one older than cutoff.

    Lines are expected in chronological order. Lines without ``marker`` are
    ignored; malformed lines are skipped and counted. Returns (records, malformed_count); records are newest first.
    """
    records = []
    malformed = 0
    for line in reversed(lines):
        if not line.strip():
            continue
        if marker and marker not in line:
            continue
        try:
            record = parse_line(line, date_format, now)
        except LogParseError as e:
            malformed += 1
            logger.debug(f"Skipping malformed line: {e}")
            continue
        if record.date < cutoff:
            break
        records.append(record)
    return records, malformed


def dedupe_by_ip(records: List[LogRecord]) -> List[LogRecord]:
    """Sort by IP address and keep the first record for each address.

    The sort is stable, so for a shared address the record collected first wins.
    """
    unique = []
    seen = set()
    for record in sorted(records, key=lambda r: r.ip_address):
        if record.ip_address in seen:
            continue
        seen.add(record.ip_address)
        unique.append(record)
    return unique


def _decode_lines(data: bytes) -> List[str]:
    return data.decode('utf-8', errors='replace').splitlines()


def read_tail(read_block: Callable[[int, int], bytes], size: int, count: int,
              block_size: int = READ_BLOCK_SIZE) -> List[str]:
    """Read the last ``count`` lines of a file, walking backwards in blocks."""
    if count <= 0 or size <= 0:
        return []
    data = b''
    offset = size
    # One extra newline guarantees the first kept line is complete
    while offset > 0 and data.count(b'\n') <= count:
        start = max(0, offset - block_size)
        data = read_block(start, offset - start) + data
        offset = start
    return _decode_lines(data)[-count:]


def read_head(read_block: Callable[[int, int], bytes], size: int, count: int,
              block_size: int = READ_BLOCK_SIZE) -> List[str]:
    """Read the first ``count`` lines of a file."""
    if count <= 0 or size <= 0:
        return []
    data = b''
    offset = 0
    while offset < size and data.count(b'\n') < count:
        chunk = read_block(offset, min(block_size, size - offset))
        if not chunk:
            break
        data += chunk
        offset += len(chunk)
    return _decode_lines(data)[:count]


def read_lines(read_block: Callable[[int, int], bytes], size: int, max_lines: int,
               block_size: int = READ_BLOCK_SIZE) -> List[str]:
    """Negative ``max_lines`` reads from the end of the file, positive from the start."""
    if max_lines < 0:
        return read_tail(read_block, size, -max_lines, block_size)
    return read_head(read_block, size, max_lines, block_size)


def report_name(now: datetime, extension: str = "csv") -> str:
    return f"{REPORT_PREFIX}-{now.strftime('%m%d%Y')}.{extension}"


def export_csv(records: List[LogRecord], export_path: str, now: Optional[datetime] = None) -> str:
    """Write the report CSV. A header row is written even with no records."""
    if now is None:
        now = datetime.now()
    filename = os.path.join(export_path, report_name(now))
    with open(filename, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(record.as_row() for record in records)
    logger.info(f"    Exported {os.path.basename(filename)} ({len(records)} records)")
    return filename


def export_xlsx(records: List[LogRecord], export_path: str, now: Optional[datetime] = None) -> str:
    """Write the report as an Excel workbook."""
    if now is None:
        now = datetime.now()
    filename = os.path.join(export_path, report_name(now, "xlsx"))

    wb = Workbook()
    ws = wb.active
    ws.title = REPORT_PREFIX

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="0066CC", end_color="0066CC", fill_type="solid")
    left_alignment = Alignment(horizontal='left', vertical='top')

    ws.append(REPORT_COLUMNS)
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = left_alignment

    column_widths = [len(name) for name in REPORT_COLUMNS]
    for record in records:
        row = record.as_row()
        values = [row[name] for name in REPORT_COLUMNS]
        ws.append(values)
        for i, value in enumerate(values):
            column_widths[i] = max(column_widths[i], len(value))

    for i, width in enumerate(column_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = min(width + 2, 50)
    ws.freeze_panes = 'A2'

    wb.save(filename)
    logger.info(f"    Exported {os.path.basename(filename)} ({len(records)} records)")
    return filename


class ForestEnumerator:
    """Lists the domain controllers of every domain in the forest over LDAP."""

    def __init__(self, config: NetlogonConfig):
        self.config = config
        self.conn: Optional[Connection] = None
        self.base_dn: str = ""
        self.config_dn: str = ""
        self._servers: Optional[List] = None

    def connect(self):
        """Establish LDAP connection."""
        try:
            port = 636 if self.config.use_ssl else self.config.port
            server = Server(
                self.config.domain_controller,
                port=port,
                use_ssl=self.config.use_ssl,
                get_info=ALL
            )

            if self.config.auth_method.lower() == 'kerberos':
                logger.info("Connecting using Kerberos authentication...")
                self.conn = Connection(
                    server,
                    user=self.config.username,
                    password=self.config.password,
                    authentication=SASL,
                    sasl_mechanism=KERBEROS,
                    auto_bind=True
                )
            else:
                logger.info("Connecting using NTLM authentication...")
                user = self.config.username
                if '\\' not in user and '@' not in user:
                    if self.config.domain:
                        user = f"{self.config.domain}\\{user}"

                self.conn = Connection(
                    server,
                    user=user,
                    password=self.config.password,
                    authentication=NTLM,
                    auto_bind=True
                )
        except LDAPException as e:
            raise EnumerationError(f"LDAP bind to {self.config.domain_controller} failed: {e}") from e

        logger.info("LDAP bind successful")
        self._get_root_dse()

    def _get_root_dse(self):
        """Get root DSE information."""
        info = self.conn.server.info
        if info:
            if info.naming_contexts:
                self.base_dn = str(info.naming_contexts[0])
            if hasattr(info, 'other'):
                if 'configurationNamingContext' in info.other:
                    self.config_dn = str(info.other['configurationNamingContext'][0])
                if 'defaultNamingContext' in info.other:
                    self.base_dn = str(info.other['defaultNamingContext'][0])

        if not self.config_dn:
            raise EnumerationError("Root DSE did not return a configuration naming context")
        logger.info(f"Base DN: {self.base_dn}")
        logger.info(f"Config DN: {self.config_dn}")

    def search(self, search_base: str, search_filter: str, attributes: List[str] = None,
               search_scope: int = SUBTREE) -> List:
        """Perform paged LDAP search."""
        if attributes is None:
            attributes = ['*']

        entries = []
        try:
            self.conn.search(
                search_base=search_base,
                search_filter=search_filter,
                search_scope=search_scope,
                attributes=attributes,
                paged_size=self.config.page_size,
                paged_cookie=None
            )

            entries.extend(self.conn.entries)

            # Handle paging
            while self.conn.result.get('controls', {}).get('1.2.840.113556.1.4.319', {}).get('value', {}).get('cookie'):
                cookie = self.conn.result['controls']['1.2.840.113556.1.4.319']['value']['cookie']
                self.conn.search(
                    search_base=search_base,
                    search_filter=search_filter,
                    search_scope=search_scope,
                    attributes=attributes,
                    paged_size=self.config.page_size,
                    paged_cookie=cookie
                )
                entries.extend(self.conn.entries)

        except LDAPException as e:
            raise EnumerationError(f"Search of {search_base} failed: {e}") from e

        return entries

    def list_domains(self) -> List[Dict[str, str]]:
        """List the domains of the forest as {'Name', 'NC'} dicts."""
        entries = self.search(
            f"CN=Partitions,{self.config_dn}",
            DOMAIN_CROSSREF_FILTER,
            ['nCName', 'dnsRoot']
        )
        domains = []
        for entry in entries:
            nc = safe_str(get_attr(entry, 'nCName', ''))
            name = safe_str(get_attr(entry, 'dnsRoot', '')) or dn_to_fqdn(nc)
            domains.append({"Name": name.lower(), "NC": nc})
        return domains

    def list_domain_controllers(self, domain_nc: str) -> List[str]:
        """List DNS host names of the DCs whose computer account lives in the domain."""
        if self._servers is None:
            self._servers = self.search(
                f"CN=Sites,{self.config_dn}",
                SERVER_FILTER,
                ['dNSHostName', 'serverReference']
            )
        domain = dn_to_fqdn(domain_nc)
        hosts = []
        for entry in self._servers:
            hostname = safe_str(get_attr(entry, 'dNSHostName', ''))
            reference = safe_str(get_attr(entry, 'serverReference', ''))
            if hostname and dn_to_fqdn(reference) == domain:
                hosts.append(hostname)
        return hosts

    def enumerate_hosts(self) -> List[str]:
        """Return every domain controller in every domain of the forest."""
        logger.info("[-] Enumerating Domain Controllers...")
        if self.conn is None:
            self.connect()
        hosts = []
        for domain in self.list_domains():
            dcs = self.list_domain_controllers(domain["NC"])
            logger.info(f"    {domain['Name']}: {len(dcs)} domain controllers")
            hosts.extend(dcs)
        logger.info(f"    Found {len(hosts)} domain controllers")
        return hosts

    def close(self):
        """Close LDAP connection."""
        if self.conn:
            self.conn.unbind()


class RemoteLog:
    """A log file on a host's administrative share."""

    def __init__(self, conn: SMBConnection, share: str, path: str):
        self.conn = conn
        self.share = share
        self.path = path
        self.size = 0

    def get_mtime(self) -> datetime:
        shared_file = self.conn.listPath(self.share, self.path)[0]
        self.size = shared_file.get_filesize()
        return datetime.fromtimestamp(shared_file.get_mtime_epoch())

    def read_lines(self, max_lines: int) -> List[str]:
        if not self.size:
            self.get_mtime()
        tid = self.conn.connectTree(self.share)
        try:
            # netlogon keeps the log open for writing
            fid = self.conn.openFile(tid, self.path, desiredAccess=FILE_READ_DATA,
                                     shareMode=FILE_SHARE_READ | FILE_SHARE_WRITE)
            try:
                def read_block(offset: int, length: int) -> bytes:
                    return self.conn.readFile(tid, fid, offset, length, singleCall=False)
                return read_lines(read_block, self.size, max_lines)
            finally:
                self.conn.closeFile(tid, fid)
        finally:
            self.conn.disconnectTree(tid)


class SMBLogReader:
    """Opens NETLOGON logs on domain controllers over SMB."""

    def __init__(self, config: NetlogonConfig):
        self.config = config

    def _connect(self, host: str) -> SMBConnection:
        conn = SMBConnection(host, host, timeout=self.config.timeout)
        if self.config.auth_method.lower() == 'kerberos':
            conn.kerberosLogin(self.config.username, self.config.password, self.config.domain,
                               kdcHost=self.config.domain_controller or None)
        else:
            conn.login(self.config.username, self.config.password, self.config.domain)
        return conn

    @contextmanager
    def open(self, host: str) -> Iterator[RemoteLog]:
        conn = None
        try:
            conn = self._connect(host)
            yield RemoteLog(conn, self.config.share, self.config.log_path)
        except (SessionError, NetBIOSError, OSError) as e:
            raise CollectionError(f"{host}: cannot read \\\\{host}\\{self.config.share}\\{self.config.log_path}: {e}") from e
        finally:
            if conn is not None:
                try:
                    conn.logoff()
                except (SessionError, NetBIOSError, OSError) as e:
                    logger.debug(f"{host}: logoff failed: {e}")
                conn.close()


class PyNetlogon:
    """Collects and aggregates NETLOGON records from a set of hosts."""

    def __init__(self, config: NetlogonConfig, reader, now: Optional[datetime] = None):
        self.config = config
        self.reader = reader
        self.now = now or datetime.now()
        self.cutoff = self.now - timedelta(days=config.days)
        self.records: List[LogRecord] = []
        self.results: List[HostResult] = []

    def collect_host(self, host: str) -> HostResult:
        """Read and scan one host's log. Raises CollectionError only in fail-fast mode."""
        logger.info(f"[-] Collecting {host}...")
        try:
            with self.reader.open(host) as log:
                mtime = log.get_mtime()
                if mtime <= self.cutoff:
                    logger.info(f"    {host}: log last written {mtime}, skipping")
                    return HostResult(host, HOST_SKIPPED, reason=f"log last written {mtime}")
                lines = log.read_lines(self.config.log_max_lines)
        except CollectionError as e:
            if self.config.fail_fast:
                raise
            logger.warning(f"    {e}")
            return HostResult(host, HOST_FAILED, reason=str(e))

        records, malformed = scan_lines(lines, self.cutoff, self.config.date_format,
                                        self.config.marker, self.now)
        if malformed:
            logger.warning(f"    {host}: skipped {malformed} malformed lines")
        logger.info(f"    {host}: {len(records)} records from {len(lines)} lines")
        return HostResult(host, HOST_COLLECTED, records=records, malformed=malformed)

    def _merge(self, result: HostResult):
        self.results.append(result)
        self.records.extend(result.records)

    def run(self, hosts: List[str]) -> List[HostResult]:
        """Collect every host, sequentially or on a thread pool."""
        logger.info(f"[*] Commencing - {datetime.now()}")
        logger.info(f"[*] Cutoff: {self.cutoff}")

        if self.config.threads <= 1:
            for host in hosts:
                self._merge(self.collect_host(host))
        else:
            done: Dict[str, HostResult] = {}
            executor = ThreadPoolExecutor(max_workers=self.config.threads)
            try:
                futures = {executor.submit(self.collect_host, host): host for host in hosts}
                for future in as_completed(futures):
                    done[futures[future]] = future.result()
            finally:
                executor.shutdown(wait=True, cancel_futures=True)
                # Merge in host order so the report does not depend on timing
                for host in hosts:
                    if host in done:
                        self._merge(done[host])

        collected = sum(1 for r in self.results if r.status == HOST_COLLECTED)
        skipped = sum(1 for r in self.results if r.status == HOST_SKIPPED)
        failed = sum(1 for r in self.results if r.status == HOST_FAILED)
        logger.info(f"[*] Hosts: {collected} collected, {skipped} skipped, {failed} failed")
        return self.results

    @property
    def all_failed(self) -> bool:
        return bool(self.results) and all(r.status == HOST_FAILED for r in self.results)

    def export(self, export_path: str) -> List[str]:
        """Deduplicate accumulated records and write the report(s)."""
        logger.info("[*] Exporting report...")
        unique = dedupe_by_ip(self.records)
        files = [export_csv(unique, export_path, self.now)]
        if self.config.export_xlsx:
            files.append(export_xlsx(unique, export_path, self.now))
        return files


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PyNetlogon - collect NETLOGON no-client-site entries from every DC in the forest",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Enumerate the forest through one DC and report the last day
  %(prog)s -dc 192.168.1.1 -u admin -p password123 -d DOMAIN.LOCAL -o /tmp/reports

  # Last week, reading the 1000 most recent lines per DC on 8 threads
  %(prog)s -dc dc01.domain.local -u admin -p pass -d DOMAIN.LOCAL -o . --days 7 --log-max-lines -1000 --threads 8

  # Skip enumeration and read specific DCs
  %(prog)s -u admin -p pass -d DOMAIN.LOCAL -o . --hosts dc01.domain.local,dc02.domain.local
        """
    )

    parser.add_argument('-o', '--export-path', required=True,
                        help='Existing directory for the CSV report')
    parser.add_argument('--days', type=int, default=DEFAULT_DAYS,
                        help=f'Report entries from the last N days, 1-{MAX_DAYS} (default: {DEFAULT_DAYS})')
    parser.add_argument('--log-max-lines', type=int, default=DEFAULT_LOG_MAX_LINES,
                        help=f'Lines to read per log; negative reads the most recent (default: {DEFAULT_LOG_MAX_LINES})')

    parser.add_argument('-dc', '--domain-controller', default='',
                        help='Domain Controller used to enumerate the forest')
    parser.add_argument('-u', '--username', default='',
                        help='Username for authentication')
    parser.add_argument('-p', '--password', default='',
                        help='Password for authentication')
    parser.add_argument('-d', '--domain', default='',
                        help='Domain name (e.g., DOMAIN.LOCAL)')
    parser.add_argument('--auth', choices=['ntlm', 'kerberos'], default='ntlm',
                        help='Authentication method (default: ntlm)')
    parser.add_argument('--ssl', action='store_true',
                        help='Use SSL/TLS (LDAPS)')
    parser.add_argument('--port', type=int, default=389,
                        help='LDAP port (default: 389, use 636 for LDAPS)')
    parser.add_argument('--page-size', type=int, default=500,
                        help='LDAP page size (default: 500)')

    parser.add_argument('--hosts', default='',
                        help='Comma-separated DC host names; skips forest enumeration')
    parser.add_argument('--share', default=DEFAULT_SHARE,
                        help=f'Share holding the log (default: {DEFAULT_SHARE})')
    parser.add_argument('--log-path', default=DEFAULT_LOG_PATH,
                        help=f'Log path inside the share (default: {DEFAULT_LOG_PATH})')
    parser.add_argument('--date-format', default=DEFAULT_DATE_FORMAT,
                        help='strptime format of the leading timestamp (default: "%%m/%%d %%H:%%M:%%S")')
    parser.add_argument('--match', default=DEFAULT_MARKER,
                        help=f'Only report lines containing this text, empty for all (default: {DEFAULT_MARKER})')
    parser.add_argument('--threads', type=int, default=1,
                        help='Hosts to collect in parallel (default: 1)')
    parser.add_argument('--timeout', type=int, default=30,
                        help='SMB connection timeout per host in seconds (default: 30)')
    parser.add_argument('--fail-fast', action='store_true',
                        help='Abort the run on the first unreadable host')
    parser.add_argument('--xlsx', action='store_true',
                        help='Also write an Excel copy of the report')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')
    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logger.setLevel(logging.DEBUG)

    if not 1 <= args.days <= MAX_DAYS:
        print(f"[!] Error: --days must be between 1 and {MAX_DAYS}")
        sys.exit(1)

    if not os.path.isdir(args.export_path):
        print(f"[!] Error: export path {args.export_path} does not exist")
        sys.exit(1)

    hosts = [h.strip() for h in args.hosts.split(',') if h.strip()]
    if not hosts and not args.domain_controller:
        print("[!] Error: -dc is required unless --hosts is given")
        sys.exit(1)

    if not args.username or (args.auth == 'ntlm' and not args.password):
        print("[!] Error: -u and -p are required")
        sys.exit(1)

    print(BANNER)
    sys.stdout.flush()

    config = NetlogonConfig(
        export_path=args.export_path,
        days=args.days,
        log_max_lines=args.log_max_lines,
        domain_controller=args.domain_controller,
        domain=args.domain,
        username=args.username,
        password=args.password,
        auth_method=args.auth,
        use_ssl=args.ssl,
        port=636 if args.ssl else args.port,
        page_size=args.page_size,
        hosts=hosts,
        share=args.share,
        log_path=args.log_path,
        date_format=args.date_format,
        marker=args.match,
        threads=args.threads,
        timeout=args.timeout,
        fail_fast=args.fail_fast,
        export_xlsx=args.xlsx,
    )

    if not config.hosts:
        enumerator = ForestEnumerator(config)
        try:
            config.hosts = enumerator.enumerate_hosts()
        except EnumerationError as e:
            logger.error(f"[!] {e}")
            sys.exit(1)
        finally:
            enumerator.close()

    collector = PyNetlogon(config, SMBLogReader(config))
    start_time = datetime.now()
    exit_code = 0

    try:
        collector.run(config.hosts)
        if collector.all_failed:
            logger.error("[!] No domain controller log could be read")
            exit_code = 1
    except CollectionError as e:
        logger.error(f"[!] {e}")
        exit_code = 1
    except KeyboardInterrupt:
        logger.warning("\n[!] Interrupted by user")
        exit_code = 1
    finally:
        collector.export(config.export_path)

    logger.info(f"[*] Total Execution Time: {datetime.now() - start_time}")
    logger.info(f"[*] Output Directory: {os.path.abspath(config.export_path)}")
    if exit_code:
        sys.exit(exit_code)
    logger.info("[*] Completed.")


if __name__ == "__main__":
    main()
