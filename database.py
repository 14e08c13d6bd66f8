# database.py
import logging
import sqlite3

logger = logging.getLogger("counter_sale.database")

DEMO_PRODUCTS = [
    ("Laptop Dell XPS 13", 125000, 5, "Informatique", "123456789012"),
    ("Smartphone Samsung Galaxy S24", 89000, 12, "Téléphonie", "123456789013"),
    ("Tablette iPad Air", 67000, 8, "Informatique", "123456789014"),
]

DEMO_CLIENTS = [
    ("1", "Ahmed Benali", "0555123456", "ahmed.benali@email.com", "Alger Centre", 1500.00, 120, 5),
    ("2", "Fatima Zerrouki", "0661234567", "fatima.zerrouki@email.com", "Oran", -250.00, 85, 3),
    ("3", "Mohamed Khelifa", "0771234568", "mohamed.khelifa@email.com", "Constantine", 750.00, 200, 8),
]


class Database:
    """
    Manages the SQLite connection backing the catalog and client providers.
    Completed sales are not stored.
    """
    def __init__(self, db_name: str = "comptoir.db", seed_demo_data: bool = False):
        self.conn = sqlite3.connect(db_name, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._create_tables()
        self._ensure_divers()
        if seed_demo_data:
            self.seed_demo_data()

    def _create_tables(self):
        cur = self.conn.cursor()
        cur.execute("""
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            designation TEXT NOT NULL,
            price REAL NOT NULL DEFAULT 0,
            stock INTEGER NOT NULL DEFAULT 0,
            category TEXT DEFAULT '',
            barcode TEXT UNIQUE
        )
        """)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS clients (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            phone TEXT DEFAULT '',
            email TEXT DEFAULT '',
            address TEXT DEFAULT '',
            balance REAL DEFAULT 0,
            loyalty_points INTEGER DEFAULT 0,
            discount REAL DEFAULT 0
        )
        """)
        self.conn.commit()

    def _ensure_divers(self):
        cur = self.conn.cursor()
        cur.execute("""
        INSERT OR IGNORE INTO clients (id, name, phone, email, address, balance, loyalty_points, discount)
        VALUES ('divers', 'Divers', '', '', '', 0, 0, 0)
        """)
        self.conn.commit()

    def seed_demo_data(self):
        """Insert the demo catalog and clients when the tables hold nothing yet."""
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM products")
        if cur.fetchone()[0] == 0:
            for designation, price, stock, category, barcode in DEMO_PRODUCTS:
                self.add_product(designation, price, stock, category, barcode)
            logger.info(f"Seeded {len(DEMO_PRODUCTS)} demo products")
        cur.execute("SELECT COUNT(*) FROM clients WHERE id != 'divers'")
        if cur.fetchone()[0] == 0:
            for row in DEMO_CLIENTS:
                self.add_client(*row)
            logger.info(f"Seeded {len(DEMO_CLIENTS)} demo clients")

    def close(self):
        self.conn.close()

    # Product operations
    def add_product(self, designation: str, price: float, stock: int,
                    category: str = "", barcode: str = None):
        """Insert a new product; barcode must be unique."""
        cur = self.conn.cursor()
        cur.execute("""
        INSERT INTO products (designation, price, stock, category, barcode)
        VALUES (?, ?, ?, ?, ?)
        """, (designation, float(price), int(stock), category, barcode or None))
        self.conn.commit()
        return cur.lastrowid

    def update_product(self, product_id: int, designation: str, price: float,
                       stock: int, category: str = ""):
        cur = self.conn.cursor()
        cur.execute("""
        UPDATE products
        SET designation = ?, price = ?, stock = ?, category = ?
        WHERE id = ?
        """, (designation, float(price), int(stock), category, product_id))
        self.conn.commit()

    def get_product_by_barcode(self, barcode: str):
        """Fetch a product row by exact barcode."""
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM products WHERE barcode = ?", (barcode,))
        row = cur.fetchone()
        return dict(row) if row else None

    def get_product_by_designation(self, designation: str):
        """First product without a barcode carrying this designation."""
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM products WHERE barcode IS NULL AND designation = ? ORDER BY id",
                    (designation,))
        row = cur.fetchone()
        return dict(row) if row else None

    def list_products(self):
        """Return all products as list of dicts, in insertion order."""
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM products ORDER BY id")
        return [dict(row) for row in cur.fetchall()]

    # Client operations
    def add_client(self, client_id: str, name: str, phone: str = "", email: str = "",
                   address: str = "", balance: float = 0, loyalty_points: int = 0,
                   discount: float = 0):
        cur = self.conn.cursor()
        cur.execute("""
        INSERT OR REPLACE INTO clients
            (id, name, phone, email, address, balance, loyalty_points, discount)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (str(client_id), name, phone, email, address,
              float(balance), int(loyalty_points), float(discount)))
        self.conn.commit()

    def list_clients(self):
        """Return all clients; the Divers sentinel comes last."""
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM clients ORDER BY id = 'divers', rowid")
        return [dict(row) for row in cur.fetchall()]
