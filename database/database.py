"""
Database layer for the SLI Builder.

This module provides the core database functionality including connection management,
initialization, and CRUD operations for the product master store, configuration,
the resolution log and the aggregation cache.
"""

import sqlite3
import logging
import threading
import csv
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Dict, Any, Iterable, Tuple

from database.models import (
    ProductMasterRecord, Configuration, ResolutionLogEntry, DEFAULT_CONFIG,
    ValidationError, DatabaseError, ProductNotFoundError, ConfigurationError
)


logger = logging.getLogger(__name__)

# Master-data writes are serialized process-wide; SQLite's BEGIN IMMEDIATE
# covers writers in other processes.
_WRITE_LOCK = threading.Lock()

CSV_FIELDS = [
    'product_code', 'unit_weight', 'carton_weight', 'units_per_carton',
    'unit_of_measure', 'notes'
]


class DatabaseManager:
    """
    Main database manager class that handles all database operations.

    This class follows the Repository pattern and provides a clean interface
    for all database operations while handling connection management, transactions,
    and error handling.
    """

    def __init__(self, db_path: str = "sli_builder.db"):
        """
        Initialize the database manager.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        if not self.db_path.exists():
            logger.info(f"Creating new database at {self.db_path}")
            self.initialize_database()
        else:
            logger.debug(f"Using existing database at {self.db_path}")
            self._verify_database_schema()

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.

        Yields:
            sqlite3.Connection: Database connection
        """
        conn = None
        try:
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA busy_timeout = 30000")
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"Database error: {e}")
            raise DatabaseError(f"Database operation failed: {e}")
        finally:
            if conn:
                conn.close()

    @contextmanager
    def transaction(self):
        """
        Context manager for database transactions.

        Yields:
            sqlite3.Connection: Database connection within transaction
        """
        with self.get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.commit()
                logger.debug("Transaction committed successfully")
            except Exception as e:
                conn.rollback()
                logger.error(f"Transaction rolled back due to error: {e}")
                raise

    def initialize_database(self) -> None:
        """
        Initialize the database with schema and default configuration.

        Raises:
            DatabaseError: If database initialization fails
        """
        try:
            with self.get_connection() as conn:
                conn.executescript(self._get_migration_sql())
                for config in DEFAULT_CONFIG.values():
                    conn.execute("""
                        INSERT OR IGNORE INTO config (key, value, data_type, description, category)
                        VALUES (?, ?, ?, ?, ?)
                    """, (config.key, config.value, config.data_type,
                          config.description, config.category))
                conn.commit()
                logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise DatabaseError(f"Database initialization failed: {e}")

    def _get_migration_sql(self) -> str:
        """Get the SQL migration script for database initialization."""
        return """
        CREATE TABLE IF NOT EXISTS products (
            product_code TEXT PRIMARY KEY,
            unit_weight REAL NOT NULL DEFAULT 0 CHECK (unit_weight >= 0),
            carton_weight REAL NOT NULL DEFAULT 0 CHECK (carton_weight >= 0),
            units_per_carton INTEGER NOT NULL DEFAULT 0 CHECK (units_per_carton >= 0),
            unit_of_measure TEXT NOT NULL,
            notes TEXT,
            created_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            data_type TEXT DEFAULT 'string' CHECK (data_type IN ('string', 'number', 'boolean', 'json')),
            description TEXT,
            category TEXT DEFAULT 'general',
            created_date TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS resolution_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            product_code TEXT NOT NULL,
            action_taken TEXT NOT NULL CHECK (action_taken IN ('missing', 'added', 'updated', 'flagged')),
            session_id TEXT,
            notes TEXT,
            logged_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS aggregation_cache (
            session_id TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            created_at TIMESTAMP NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_resolution_code ON resolution_log(product_code);
        CREATE INDEX IF NOT EXISTS idx_resolution_session ON resolution_log(session_id);
        """

    def _verify_database_schema(self) -> None:
        """
        Verify that the database schema is present.

        Raises:
            DatabaseError: If schema verification fails
        """
        try:
            with self.get_connection() as conn:
                required_tables = ['products', 'config', 'resolution_log', 'aggregation_cache']
                cursor = conn.execute("""
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                """)
                existing_tables = [row[0] for row in cursor.fetchall()]

                missing_tables = set(required_tables) - set(existing_tables)
                if missing_tables:
                    raise DatabaseError(f"Missing required tables: {missing_tables}")

                logger.debug("Database schema verification completed successfully")

        except DatabaseError:
            raise
        except Exception as e:
            logger.error(f"Database schema verification failed: {e}")
            raise DatabaseError(f"Schema verification failed: {e}")

    # Product master operations

    def get_product(self, product_code: str) -> ProductMasterRecord:
        """
        Retrieve a product master record by code.

        Raises:
            ProductNotFoundError: If the product is not found
            DatabaseError: If database operation fails
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.execute("""
                    SELECT product_code, unit_weight, carton_weight, units_per_carton,
                           unit_of_measure, notes, created_date, last_updated
                    FROM products WHERE product_code = ?
                """, (product_code,))

                row = cursor.fetchone()
                if not row:
                    raise ProductNotFoundError(f"Product {product_code} not found")

                return self._row_to_product(row)

        except ProductNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Failed to retrieve product {product_code}: {e}")
            raise DatabaseError(f"Failed to retrieve product: {e}")

    def lookup_products(self, product_codes: Iterable[str]) -> Dict[str, ProductMasterRecord]:
        """
        Batched read of product master records.

        Codes that are not in the store are simply absent from the result.

        Args:
            product_codes: Normalized product codes to look up

        Returns:
            Mapping of product code to record
        """
        codes = sorted({code for code in product_codes if code})
        if not codes:
            return {}

        placeholders = ','.join('?' for _ in codes)
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(f"""
                    SELECT product_code, unit_weight, carton_weight, units_per_carton,
                           unit_of_measure, notes, created_date, last_updated
                    FROM products WHERE product_code IN ({placeholders})
                """, codes)
                result = {}
                for row in cursor.fetchall():
                    record = self._row_to_product(row)
                    result[record.product_code] = record

            logger.debug(f"Looked up {len(codes)} product codes, found {len(result)}")
            return result

        except Exception as e:
            logger.error(f"Failed to look up products: {e}")
            raise DatabaseError(f"Failed to look up products: {e}")

    def upsert_product(self, record: ProductMasterRecord) -> Tuple[ProductMasterRecord, bool]:
        """
        Insert or overwrite a product master record.

        This is the single write path for master data. Writing the same code
        twice overwrites the earlier values and never duplicates the row.

        Returns:
            (stored record, True if the record was newly created)

        Raises:
            ValidationError: If the record is invalid
            DatabaseError: If database operation fails
        """
        record.validate()

        with _WRITE_LOCK:
            try:
                with self.transaction() as conn:
                    now = datetime.now()
                    cursor = conn.execute(
                        "SELECT created_date FROM products WHERE product_code = ?",
                        (record.product_code,)
                    )
                    existing = cursor.fetchone()
                    created = existing is None

                    conn.execute("""
                        INSERT INTO products (
                            product_code, unit_weight, carton_weight, units_per_carton,
                            unit_of_measure, notes, created_date, last_updated
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(product_code) DO UPDATE SET
                            unit_weight = excluded.unit_weight,
                            carton_weight = excluded.carton_weight,
                            units_per_carton = excluded.units_per_carton,
                            unit_of_measure = excluded.unit_of_measure,
                            notes = excluded.notes,
                            last_updated = excluded.last_updated
                    """, (
                        record.product_code, record.unit_weight, record.carton_weight,
                        record.units_per_carton, record.unit_of_measure, record.notes,
                        now.isoformat(), now.isoformat()
                    ))

                    if created:
                        record.created_date = now
                    elif existing['created_date']:
                        record.created_date = datetime.fromisoformat(existing['created_date'])
                    record.last_updated = now

                action = "Created" if created else "Updated"
                logger.info(f"{action} product: {record.product_code}")
                return record, created

            except ValidationError:
                raise
            except DatabaseError:
                raise
            except Exception as e:
                logger.error(f"Failed to upsert product {record.product_code}: {e}")
                raise DatabaseError(f"Failed to upsert product: {e}")

    def delete_product(self, product_code: str) -> None:
        """
        Delete a product master record.

        Raises:
            ProductNotFoundError: If the product is not found
        """
        with _WRITE_LOCK:
            with self.transaction() as conn:
                cursor = conn.execute("DELETE FROM products WHERE product_code = ?", (product_code,))
                if cursor.rowcount == 0:
                    raise ProductNotFoundError(f"Product {product_code} not found")
        logger.info(f"Deleted product: {product_code}")

    def list_products(self, search: Optional[str] = None,
                      limit: Optional[int] = None) -> List[ProductMasterRecord]:
        """
        List product master records ordered by code.

        Args:
            search: Optional substring filter on the product code
            limit: Maximum number of records to return
        """
        try:
            with self.get_connection() as conn:
                query = """
                    SELECT product_code, unit_weight, carton_weight, units_per_carton,
                           unit_of_measure, notes, created_date, last_updated
                    FROM products
                    WHERE 1=1
                """
                params: List[Any] = []

                if search:
                    query += " AND product_code LIKE ?"
                    params.append(f"%{search}%")

                query += " ORDER BY product_code"

                if limit:
                    query += " LIMIT ?"
                    params.append(limit)

                cursor = conn.execute(query, params)
                return [self._row_to_product(row) for row in cursor.fetchall()]

        except Exception as e:
            logger.error(f"Failed to list products: {e}")
            raise DatabaseError(f"Failed to list products: {e}")

    def _row_to_product(self, row: sqlite3.Row) -> ProductMasterRecord:
        """Convert a database row to a ProductMasterRecord."""
        return ProductMasterRecord.from_dict(dict(row))

    def get_database_stats(self) -> Dict[str, Any]:
        """Get database statistics and information."""
        try:
            with self.get_connection() as conn:
                stats = {}

                cursor = conn.execute("SELECT COUNT(*) FROM products")
                stats['total_products'] = cursor.fetchone()[0]

                cursor = conn.execute("SELECT COUNT(*) FROM products WHERE units_per_carton <= 0")
                stats['degenerate_products'] = cursor.fetchone()[0]

                cursor = conn.execute("SELECT COUNT(*) FROM config")
                stats['config_entries'] = cursor.fetchone()[0]

                cursor = conn.execute("SELECT COUNT(*) FROM resolution_log")
                stats['resolution_log_entries'] = cursor.fetchone()[0]

                cursor = conn.execute("SELECT COUNT(*) FROM aggregation_cache")
                stats['cached_sessions'] = cursor.fetchone()[0]

                stats['database_size_bytes'] = self.db_path.stat().st_size

                cursor = conn.execute("SELECT value FROM config WHERE key = 'database_version'")
                version_row = cursor.fetchone()
                stats['database_version'] = version_row[0] if version_row else 'unknown'

                return stats

        except Exception as e:
            logger.error(f"Failed to get database stats: {e}")
            raise DatabaseError(f"Failed to get database stats: {e}")

    # Configuration operations

    def get_config(self, key: str) -> Configuration:
        """
        Retrieve a configuration setting by key.

        Raises:
            ConfigurationError: If configuration is not found
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.execute("""
                    SELECT key, value, data_type, description, category, created_date, last_updated
                    FROM config WHERE key = ?
                """, (key,))

                row = cursor.fetchone()
                if not row:
                    raise ConfigurationError(f"Configuration key {key} not found")

                return self._row_to_config(row)

        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to retrieve configuration {key}: {e}")
            raise DatabaseError(f"Failed to retrieve configuration: {e}")

    def list_config(self, category: Optional[str] = None) -> List[Configuration]:
        """List configuration settings, optionally filtered by category."""
        with self.get_connection() as conn:
            query = """
                SELECT key, value, data_type, description, category, created_date, last_updated
                FROM config
            """
            params: List[Any] = []
            if category:
                query += " WHERE category = ?"
                params.append(category)
            query += " ORDER BY category, key"
            cursor = conn.execute(query, params)
            return [self._row_to_config(row) for row in cursor.fetchall()]

    def get_config_value(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value with automatic type conversion.

        Raises:
            DatabaseError: If key not found and no default provided
        """
        try:
            return self.get_config(key).get_typed_value()
        except ConfigurationError:
            if default is None:
                raise DatabaseError(f"Configuration key '{key}' not found")
            return default

    def set_config_value(self, key: str, value: Any, data_type: Optional[str] = None,
                         description: Optional[str] = None, category: str = 'general') -> Configuration:
        """
        Set a configuration value, keeping the data type of an existing setting.

        Raises:
            ValidationError: If value is invalid for the configuration
        """
        try:
            existing = self.get_config(key)
        except ConfigurationError:
            existing = None

        if existing is not None:
            data_type = data_type or existing.data_type
            description = description or existing.description
            if category == 'general':
                category = existing.category
        elif data_type is None:
            if isinstance(value, bool):
                data_type = 'boolean'
            elif isinstance(value, (int, float)):
                data_type = 'number'
            elif isinstance(value, (dict, list)):
                data_type = 'json'
            else:
                data_type = 'string'

        config = Configuration(key=key, value='', data_type=data_type,
                               description=description, category=category)
        try:
            config.set_typed_value(value)
            config.validate()
        except ValueError as e:
            raise ValidationError(f"Invalid value for '{key}': {e}")

        if key == 'mixed_unit_policy' and config.value not in ('warn', 'reject'):
            raise ValidationError("mixed_unit_policy must be 'warn' or 'reject'")

        now = datetime.now().isoformat()
        with self.transaction() as conn:
            conn.execute("""
                INSERT INTO config (key, value, data_type, description, category, created_date, last_updated)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    data_type = excluded.data_type,
                    description = excluded.description,
                    category = excluded.category,
                    last_updated = excluded.last_updated
            """, (config.key, config.value, config.data_type, config.description,
                  config.category, now, now))

        logger.info(f"Configuration '{key}' set to '{config.value}'")
        return config

    def _row_to_config(self, row: sqlite3.Row) -> Configuration:
        created_date = datetime.fromisoformat(row['created_date']) if row['created_date'] else None
        last_updated = datetime.fromisoformat(row['last_updated']) if row['last_updated'] else None
        return Configuration(
            key=row['key'],
            value=row['value'],
            data_type=row['data_type'],
            description=row['description'],
            category=row['category'],
            created_date=created_date,
            last_updated=last_updated
        )

    # Resolution log operations

    def create_resolution_log(self, entry: ResolutionLogEntry) -> ResolutionLogEntry:
        """Write an entry to the resolution log."""
        entry.validate()
        entry.logged_at = entry.logged_at or datetime.now()
        with self.transaction() as conn:
            cursor = conn.execute("""
                INSERT INTO resolution_log (product_code, action_taken, session_id, notes, logged_at)
                VALUES (?, ?, ?, ?, ?)
            """, (entry.product_code, entry.action_taken, entry.session_id,
                  entry.notes, entry.logged_at.isoformat()))
            entry.id = cursor.lastrowid
        logger.debug(f"Resolution log: {entry.action_taken} {entry.product_code}")
        return entry

    def list_resolution_logs(self, product_code: Optional[str] = None,
                             session_id: Optional[str] = None,
                             limit: Optional[int] = None) -> List[ResolutionLogEntry]:
        """List resolution log entries, newest first."""
        query = """
            SELECT id, product_code, action_taken, session_id, notes, logged_at
            FROM resolution_log WHERE 1=1
        """
        params: List[Any] = []
        if product_code:
            query += " AND product_code = ?"
            params.append(product_code)
        if session_id:
            query += " AND session_id = ?"
            params.append(session_id)
        query += " ORDER BY id DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            return [
                ResolutionLogEntry(
                    id=row['id'],
                    product_code=row['product_code'],
                    action_taken=row['action_taken'],
                    session_id=row['session_id'],
                    notes=row['notes'],
                    logged_at=datetime.fromisoformat(row['logged_at']) if row['logged_at'] else None
                )
                for row in cursor.fetchall()
            ]

    # Aggregation cache operations

    def save_aggregation(self, session_id: str, payload: str) -> None:
        """Store (or overwrite) the serialized aggregation for a session."""
        with self.transaction() as conn:
            conn.execute("""
                INSERT INTO aggregation_cache (session_id, payload, created_at)
                VALUES (?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    payload = excluded.payload,
                    created_at = excluded.created_at
            """, (session_id, payload, datetime.now().isoformat()))

    def load_aggregation(self, session_id: str) -> Optional[Tuple[str, datetime]]:
        """Return (payload, created_at) for a session, or None."""
        with self.get_connection() as conn:
            cursor = conn.execute(
                "SELECT payload, created_at FROM aggregation_cache WHERE session_id = ?",
                (session_id,)
            )
            row = cursor.fetchone()
            if not row:
                return None
            return row['payload'], datetime.fromisoformat(row['created_at'])

    def clear_aggregation(self, session_id: str) -> bool:
        """Remove a session's cached aggregation. Returns True if one existed."""
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM aggregation_cache WHERE session_id = ?", (session_id,))
            return cursor.rowcount > 0

    # CSV import/export

    def import_products_from_csv(self, csv_file_path: str) -> Dict[str, Any]:
        """
        Import (upsert) product master records from a CSV file.

        Returns:
            Summary with created, updated and failed counts plus error messages

        Raises:
            DatabaseError: If the file cannot be read
        """
        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise DatabaseError(f"CSV file not found: {csv_file_path}")

        summary: Dict[str, Any] = {'created': 0, 'updated': 0, 'failed': 0, 'errors': []}

        try:
            with open(csv_path, 'r', encoding='utf-8', newline='') as csvfile:
                reader = csv.DictReader(csvfile)
                for line_number, row in enumerate(reader, start=2):
                    try:
                        record = ProductMasterRecord.from_dict(row)
                        _, created = self.upsert_product(record)
                        summary['created' if created else 'updated'] += 1
                    except (ValidationError, KeyError, ValueError) as e:
                        summary['failed'] += 1
                        summary['errors'].append(f"Line {line_number}: {e}")
                        logger.warning(f"Skipped CSV line {line_number}: {e}")
        except OSError as e:
            raise DatabaseError(f"Failed to read CSV file: {e}")

        logger.info(
            f"Imported products from {csv_file_path}: {summary['created']} created, "
            f"{summary['updated']} updated, {summary['failed']} failed"
        )
        return summary

    def export_products_to_csv(self, csv_file_path: str) -> int:
        """Export all product master records to a CSV file. Returns the count."""
        csv_path = Path(csv_file_path)
        csv_path.parent.mkdir(parents=True, exist_ok=True)

        products = self.list_products()
        try:
            with open(csv_path, 'w', newline='', encoding='utf-8') as csvfile:
                writer = csv.DictWriter(csvfile, fieldnames=CSV_FIELDS)
                writer.writeheader()
                for product in products:
                    data = product.to_dict()
                    writer.writerow({name: data.get(name) if data.get(name) is not None else ''
                                     for name in CSV_FIELDS})
        except OSError as e:
            raise DatabaseError(f"Failed to export products to CSV: {e}")

        logger.info(f"Exported {len(products)} products to {csv_file_path}")
        return len(products)

    def close(self) -> None:
        """Connections are opened per operation; nothing is held open."""
        logger.debug("Database manager closed")
