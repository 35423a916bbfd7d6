# mpki/services/database.py

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cryptography import x509

from mpki.services.errors import IssuanceFailedError
from mpki.utils.crypto import common_name
from mpki.utils.datetime import format_datetime


class IssuanceDB:
    """
    SQLite record of the certificates issued during one invocation.

    Lives inside the ephemeral workspace and disappears with it. Holds:
    - config: the serial seed for this invocation
    - certificate_authority: serial, CN, issuer CN, validity and subject of
      every certificate issued
    """

    def __init__(self, path: Union[str, Path] = ":memory:") -> None:
        """
        Open (creating if needed) the issuance database.

        Args:
            path: Database file, normally inside the workspace
        """
        self.path = str(path)
        self.conn = sqlite3.connect(self.path)
        self.create_config_table()
        self.create_ca_table()

    # --------------------------
    # Schema / setup
    # --------------------------

    def create_ca_table(self) -> None:
        """ Create a table to track certificates """
        cursor = self.conn.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS certificate_authority (
                serial TEXT PRIMARY KEY,
                cn TEXT,
                issuer TEXT,
                start_date TEXT,
                expiry_date TEXT,
                subject TEXT
            )
            """
        )
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_ca_cn ON certificate_authority (cn)")
        self.conn.commit()
        cursor.close()

    def create_config_table(self) -> None:
        """ Create the single row config table """
        cursor = self.conn.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                id INTEGER PRIMARY KEY,
                serial_seed TEXT
            )
            """
        )
        cursor.execute("INSERT OR IGNORE INTO config (id, serial_seed) VALUES (1, NULL)")
        self.conn.commit()
        cursor.close()

    def close(self) -> None:
        self.conn.close()

    # --------------------------
    # Config
    # --------------------------

    def set_serial_seed(self, serial: int) -> None:
        cursor = self.conn.cursor()
        try:
            cursor.execute("UPDATE config SET serial_seed = ? WHERE id = 1", (str(serial),))
            self.conn.commit()
        finally:
            cursor.close()

    def get_serial_seed(self) -> Optional[int]:
        cursor = self.conn.cursor()
        try:
            cursor.execute("SELECT serial_seed FROM config WHERE id = 1")
            row = cursor.fetchone()
        finally:
            cursor.close()

        return int(row[0]) if row and row[0] is not None else None

    # --------------------------
    # Certificates
    # --------------------------

    def serial_exists(self, serial: int) -> bool:
        cursor = self.conn.cursor()
        try:
            cursor.execute("SELECT 1 FROM certificate_authority WHERE serial = ?", (str(serial),))
            return cursor.fetchone() is not None
        finally:
            cursor.close()

    def add_cert(self, certificate: x509.Certificate) -> None:
        """
        Record an issued certificate

        Raises:
            IssuanceFailedError: The serial was already issued in this invocation.
        """
        record = {
            'serial': str(certificate.serial_number),
            'cn': common_name(certificate.subject),
            'issuer': common_name(certificate.issuer),
            'start_date': format_datetime(certificate.not_valid_before_utc),
            'expiry_date': format_datetime(certificate.not_valid_after_utc),
            'subject': certificate.subject.rfc4514_string(),
        }

        columns = ", ".join(record.keys())
        placeholders = ", ".join(["?"] * len(record))

        cursor = self.conn.cursor()
        try:
            cursor.execute(
                f"INSERT INTO certificate_authority ({columns}) VALUES ({placeholders})",
                tuple(record.values()),
            )
            self.conn.commit()
        except sqlite3.IntegrityError as exc:
            raise IssuanceFailedError(f"Serial {certificate.serial_number} already issued.") from exc
        finally:
            cursor.close()

    def query_cert(self, serial: int) -> Optional[Dict[str, Any]]:
        cursor = self.conn.cursor()
        try:
            cursor.execute("SELECT * FROM certificate_authority WHERE serial = ?", (str(serial),))
            row = cursor.fetchone()
            if row is None:
                return None
            columns = [col[0] for col in cursor.description]
        finally:
            cursor.close()

        return dict(zip(columns, row))

    def count_certs(self) -> int:
        cursor = self.conn.cursor()
        try:
            cursor.execute("SELECT COUNT(*) FROM certificate_authority")
            return int(cursor.fetchone()[0])
        finally:
            cursor.close()
