import sqlite3
import threading
from typing import Optional, List, Tuple, Iterable

class StorageDB:
    def __init__(self, db_path: str):
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.cursor = self.conn.cursor()
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        with self._lock:
            # Blocks table: stores full JSON body
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS blocks (
                    height INTEGER PRIMARY KEY,
                    hash TEXT UNIQUE,
                    epoch INTEGER,
                    slot INTEGER,
                    data TEXT
                )
            ''')
            self.cursor.execute('CREATE INDEX IF NOT EXISTS idx_blocks_epoch ON blocks (epoch, slot)')
            # Validator fee per epoch
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS validator_epochs (
                    epoch INTEGER,
                    public_key TEXT,
                    data TEXT,
                    PRIMARY KEY (epoch, public_key)
                )
            ''')
            # Staking ledgers, one per epoch
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS staking_ledgers (
                    id INTEGER PRIMARY KEY,
                    epoch INTEGER UNIQUE,
                    data TEXT
                )
            ''')
            # Ledger entries, position keeps ledger order
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS staking_records (
                    ledger_id INTEGER,
                    public_key TEXT,
                    position INTEGER,
                    data TEXT,
                    PRIMARY KEY (ledger_id, public_key)
                )
            ''')
            # Computed rewards
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS block_rewards (
                    block_height INTEGER,
                    owner_account TEXT,
                    owner_type TEXT,
                    epoch INTEGER,
                    data TEXT,
                    PRIMARY KEY (block_height, owner_account, owner_type)
                )
            ''')
            self.cursor.execute('CREATE INDEX IF NOT EXISTS idx_rewards_owner ON block_rewards (owner_account)')
            self.conn.commit()

    def close(self):
        with self._lock:
            self.conn.close()

    # --- Block Methods ---
    def save_block(self, height: int, block_hash: str, epoch: int, slot: int, data: str):
        with self._lock:
            self.cursor.execute(
                'INSERT OR REPLACE INTO blocks (height, hash, epoch, slot, data) VALUES (?, ?, ?, ?, ?)',
                (height, block_hash, epoch, slot, data)
            )
            self.conn.commit()

    def get_block_by_height(self, height: int) -> Optional[str]:
        with self._lock:
            self.cursor.execute('SELECT data FROM blocks WHERE height = ?', (height,))
            row = self.cursor.fetchone()
            return row[0] if row else None

    def get_first_block_of_epoch(self, epoch: int) -> Optional[str]:
        with self._lock:
            self.cursor.execute(
                'SELECT data FROM blocks WHERE epoch = ? ORDER BY slot ASC, height ASC LIMIT 1',
                (epoch,)
            )
            row = self.cursor.fetchone()
            return row[0] if row else None

    # --- Validator Epoch Methods ---
    def save_validator_epoch(self, epoch: int, public_key: str, data: str):
        with self._lock:
            self.cursor.execute(
                'INSERT OR REPLACE INTO validator_epochs (epoch, public_key, data) VALUES (?, ?, ?)',
                (epoch, public_key, data)
            )
            self.conn.commit()

    def get_validator_epoch(self, epoch: int, public_key: str) -> Optional[str]:
        with self._lock:
            self.cursor.execute(
                'SELECT data FROM validator_epochs WHERE epoch = ? AND public_key = ?',
                (epoch, public_key)
            )
            row = self.cursor.fetchone()
            return row[0] if row else None

    # --- Staking Methods ---
    def save_ledger(self, ledger_id: int, epoch: int, data: str, records: Iterable[Tuple[str, str]]):
        """
        Replace a ledger and its records in one transaction.

        records: (public_key, data) in ledger order. Records from an earlier save
        of this ledger, or of another ledger for the same epoch, are removed.
        """
        rows = [(ledger_id, key, position, raw) for position, (key, raw) in enumerate(records)]
        with self._lock:
            try:
                self.cursor.execute(
                    'DELETE FROM staking_records WHERE ledger_id = ? '
                    'OR ledger_id IN (SELECT id FROM staking_ledgers WHERE epoch = ?)',
                    (ledger_id, epoch)
                )
                self.cursor.execute(
                    'INSERT OR REPLACE INTO staking_ledgers (id, epoch, data) VALUES (?, ?, ?)',
                    (ledger_id, epoch, data)
                )
                self.cursor.executemany(
                    'INSERT OR REPLACE INTO staking_records (ledger_id, public_key, position, data) VALUES (?, ?, ?, ?)',
                    rows
                )
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise

    def get_ledger_by_epoch(self, epoch: int) -> Optional[str]:
        with self._lock:
            self.cursor.execute('SELECT data FROM staking_ledgers WHERE epoch = ?', (epoch,))
            row = self.cursor.fetchone()
            return row[0] if row else None

    def get_ledger_records(self, ledger_id: int) -> List[str]:
        with self._lock:
            self.cursor.execute(
                'SELECT data FROM staking_records WHERE ledger_id = ? ORDER BY position ASC',
                (ledger_id,)
            )
            return [row[0] for row in self.cursor.fetchall()]

    # --- Reward Methods ---
    def replace_rewards(self, rows: Iterable[Tuple[int, str, str, int, str]]):
        """
        rows: (block_height, owner_account, owner_type, epoch, data).

        Every (block_height, owner_type) present in rows is replaced as a whole,
        so owners dropped since an earlier import disappear. One transaction.
        """
        rows = list(rows)
        scopes = sorted({(row[0], row[2]) for row in rows})
        with self._lock:
            try:
                self.cursor.executemany(
                    'DELETE FROM block_rewards WHERE block_height = ? AND owner_type = ?',
                    scopes
                )
                self.cursor.executemany(
                    'INSERT OR REPLACE INTO block_rewards (block_height, owner_account, owner_type, epoch, data) '
                    'VALUES (?, ?, ?, ?, ?)',
                    rows
                )
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise

    def get_rewards_by_height(self, height: int) -> List[str]:
        with self._lock:
            self.cursor.execute(
                'SELECT data FROM block_rewards WHERE block_height = ? ORDER BY owner_type DESC, owner_account ASC',
                (height,)
            )
            return [row[0] for row in self.cursor.fetchall()]

    def get_rewards_by_owner(self, owner_account: str) -> List[str]:
        with self._lock:
            self.cursor.execute(
                'SELECT data FROM block_rewards WHERE owner_account = ? ORDER BY block_height ASC',
                (owner_account,)
            )
            return [row[0] for row in self.cursor.fetchall()]
