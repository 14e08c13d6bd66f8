# ui.py
import datetime
import logging
import tkinter as tk
from tkinter import messagebox, simpledialog

import ttkbootstrap as ttk

from catalog import CatalogProvider, CatalogResolver, ClientProvider, OpenSearch, Superseded
from database import Database
from session import CounterSaleSession
from utils import format_currency

logger = logging.getLogger("counter_sale.ui")

BOOTSTRAP_THEMES = {
    "dark": "darkly",
    "light": "cosmo",
    "default": "cosmo"
}

LOOKUP_POLL_MS = 50


class CounterSaleUI:
    """The "Vente Comptoir" screen. Presents session results; holds no sale state itself."""

    def __init__(self, db: Database, config=None):
        self.db = db
        self.config = config or {}
        ui_config = self.config.get("ui", {})
        self.currency = ui_config.get("currency", "DZD")

        self.resolver = CatalogResolver(CatalogProvider(db))
        self.session = CounterSaleSession(
            resolver=self.resolver,
            client_provider=ClientProvider(db),
        )

        bootstrap_theme = BOOTSTRAP_THEMES.get(ui_config.get("theme", "default"), "cosmo")
        self.root = ttk.Window(themename=bootstrap_theme)
        self.root.title("Vente Comptoir")
        self.root.geometry("1100x720")
        self.root.minsize(900, 600)
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

        self.code_var = tk.StringVar()
        self.clock_var = tk.StringVar()
        self._product_popup = None

        self._build_gui()
        self._refresh()

    def _build_gui(self):
        """Build the counter-sale layout"""
        self._create_status_bar()

        # --- Header: client details and total ---
        header = ttk.Frame(self.root, bootstyle="dark")
        header.pack(fill=tk.X, padx=10, pady=(10, 5))

        info = ttk.Frame(header, bootstyle="dark")
        info.pack(side=tk.LEFT, fill=tk.Y, padx=10, pady=10)

        self.client_var = tk.StringVar()
        self.discount_var = tk.StringVar()
        self.balance_var = tk.StringVar()
        self.points_var = tk.StringVar()
        self.new_balance_var = tk.StringVar()

        client_label = ttk.Label(info, text="Client :", bootstyle="inverse-dark", cursor="hand2")
        client_label.grid(row=0, column=0, sticky=tk.W, padx=5, pady=2)
        client_label.bind("<Button-1>", lambda e: self._show_client_picker())
        client_value = ttk.Label(info, textvariable=self.client_var, bootstyle="inverse-dark",
                                 font=("Arial", 11, "bold"), cursor="hand2")
        client_value.grid(row=0, column=1, sticky=tk.W, padx=5, pady=2)
        client_value.bind("<Button-1>", lambda e: self._show_client_picker())
        ttk.Label(info, textvariable=self.discount_var, bootstyle="inverse-dark").grid(row=0, column=2, sticky=tk.W, padx=15, pady=2)

        ttk.Label(info, textvariable=self.balance_var, bootstyle="inverse-dark").grid(row=1, column=0, columnspan=2, sticky=tk.W, padx=5, pady=2)
        ttk.Label(info, textvariable=self.points_var, bootstyle="inverse-dark").grid(row=1, column=2, sticky=tk.W, padx=15, pady=2)

        today = datetime.date.today().strftime("%d/%m/%Y")
        ttk.Label(info, text=f"Date : {today}", bootstyle="inverse-dark").grid(row=2, column=0, columnspan=2, sticky=tk.W, padx=5, pady=2)
        ttk.Label(info, textvariable=self.new_balance_var, bootstyle="inverse-dark").grid(row=2, column=2, sticky=tk.W, padx=15, pady=2)

        self.total_var = tk.StringVar()
        ttk.Label(header, textvariable=self.total_var, bootstyle="inverse-dark",
                  font=("Arial", 36, "bold")).pack(side=tk.RIGHT, padx=20, pady=10)

        body = ttk.Frame(self.root)
        body.pack(expand=True, fill=tk.BOTH, padx=10, pady=5)

        # --- Left: exit and clock ---
        left = ttk.Frame(body)
        left.pack(side=tk.LEFT, fill=tk.Y, padx=(0, 5))
        ttk.Button(left, text="Quitter", command=self._on_close, bootstyle="danger").pack(fill=tk.X, pady=5)
        ttk.Label(left, textvariable=self.clock_var, font=("Arial", 16, "bold")).pack(pady=20)

        # --- Right: actions ---
        right = ttk.Frame(body)
        right.pack(side=tk.RIGHT, fill=tk.Y, padx=(5, 0))
        ttk.Button(right, text="Valider", command=self._validate_transaction, bootstyle="success").pack(fill=tk.X, pady=5, ipady=10)
        self.delete_btn = ttk.Button(right, text="Supprimer", command=self._remove_selected, bootstyle="danger")
        self.delete_btn.pack(fill=tk.X, pady=5, ipady=10)
        ttk.Button(right, text="Annuler", command=self._clear_transaction, bootstyle="warning").pack(fill=tk.X, pady=5, ipady=10)
        ttk.Button(right, text="Ajouter", command=lambda: self._show_product_list(""), bootstyle="info").pack(fill=tk.X, pady=5, ipady=10)

        # --- Center: code entry and cart ---
        center = ttk.Frame(body)
        center.pack(side=tk.LEFT, expand=True, fill=tk.BOTH)

        scan_frame = ttk.LabelFrame(center, text="Produit", bootstyle="primary")
        scan_frame.pack(fill=tk.X, padx=5, pady=5)
        ttk.Label(scan_frame, text="Code-barres / recherche :").pack(side=tk.LEFT, padx=5, pady=5)
        self.code_entry = ttk.Entry(scan_frame, textvariable=self.code_var, width=30)
        self.code_entry.pack(side=tk.LEFT, fill=tk.X, expand=True, padx=5, pady=5)
        self.code_entry.bind('<Return>', lambda e: self._on_code_commit())
        ttk.Button(scan_frame, text="Liste", command=lambda: self._show_product_list(self.code_var.get().strip()),
                   bootstyle="secondary").pack(side=tk.LEFT, padx=5, pady=5)

        cart_frame = ttk.LabelFrame(center, text="Articles", bootstyle="primary")
        cart_frame.pack(fill=tk.BOTH, expand=True, padx=5, pady=5)
        cart_scroll = ttk.Scrollbar(cart_frame)
        cart_scroll.pack(side=tk.RIGHT, fill=tk.Y)

        cols = ("Désignation", "Prix", "Quantité", "Total")
        self.cart_tv = ttk.Treeview(cart_frame, columns=cols, show='headings', height=12,
                                    selectmode="browse", yscrollcommand=cart_scroll.set)
        self.cart_tv.column("Désignation", width=320, anchor=tk.W)
        self.cart_tv.column("Prix", width=120, anchor=tk.E)
        self.cart_tv.column("Quantité", width=80, anchor=tk.CENTER)
        self.cart_tv.column("Total", width=140, anchor=tk.E)
        for c in cols:
            self.cart_tv.heading(c, text=c)
        self.cart_tv.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        cart_scroll.config(command=self.cart_tv.yview)
        self.cart_tv.bind("<<TreeviewSelect>>", self._on_cart_select)

        self._add_cart_context_menu()
        self.code_entry.focus_set()

    def _create_status_bar(self):
        """Create status bar at the bottom of the window"""
        self.status_bar = ttk.Frame(self.root, bootstyle="secondary")
        self.status_bar.pack(side=tk.BOTTOM, fill=tk.X)

        self.status_var = tk.StringVar(value="Prêt")
        ttk.Label(self.status_bar, textvariable=self.status_var, padding=(5, 2),
                  bootstyle="inverse-secondary").pack(side=tk.LEFT, fill=tk.X, expand=True)

        self.datetime_var = tk.StringVar()
        ttk.Label(self.status_bar, textvariable=self.datetime_var, padding=(5, 2),
                  bootstyle="inverse-secondary").pack(side=tk.RIGHT)
        self._update_datetime()

    def _update_datetime(self):
        """Tick the clock once per second; independent of the sale state"""
        now = datetime.datetime.now()
        self.datetime_var.set(now.strftime("%d/%m/%Y %H:%M:%S"))
        self.clock_var.set(now.strftime("%H:%M:%S"))
        self.root.after(1000, self._update_datetime)

    def _update_status(self, message):
        self.status_var.set(message)
        logger.info(message)

    def _report(self, result, success_message=None):
        """Show a command result; returns result.ok."""
        if not result.ok:
            messagebox.showerror("Erreur", result.message, parent=self.root)
            self._update_status(result.message)
        elif success_message:
            self._update_status(success_message)
        self._refresh()
        return result.ok

    def _refresh(self):
        """Redraw cart rows, totals and client header from the session"""
        self.cart_tv.delete(*self.cart_tv.get_children())
        for index, item in enumerate(self.session.items):
            self.cart_tv.insert("", tk.END, iid=str(index), values=(
                item.designation,
                format_currency(item.unit_price, self.currency),
                item.quantity,
                format_currency(item.line_total, self.currency),
            ))
        selected = self.session.selected_index
        if selected is not None:
            self.cart_tv.selection_set(str(selected))
        self.delete_btn.configure(state=tk.NORMAL if selected is not None else tk.DISABLED)

        client = self.session.client
        self.client_var.set(client.name if client else "Cliquer pour choisir")
        self.discount_var.set(f"Remise : {self.session.discount_percent} %")
        balance = format_currency(self.session.balance, self.currency)
        self.balance_var.set(f"Ancien solde : {balance}")
        self.new_balance_var.set(f"Nouveau solde : {balance}")
        self.points_var.set(f"Points fidélité : {self.session.loyalty_points}")
        self.total_var.set(format_currency(self.session.total, self.currency))

    # --- Product entry ---

    def _on_code_commit(self):
        """Enter in the code field: exact lookup in the background, search on miss"""
        text = self.code_var.get()
        future = self.resolver.submit(text)
        self._update_status("Recherche du produit…")
        self.root.after(LOOKUP_POLL_MS, lambda: self._poll_lookup(future, text))

    def _poll_lookup(self, future, text):
        if not future.done():
            self.root.after(LOOKUP_POLL_MS, lambda: self._poll_lookup(future, text))
            return
        if future.cancelled():
            return
        try:
            outcome = future.result()
        except Exception as e:
            logger.error(f"Lookup error for '{text}': {e}", exc_info=True)
            outcome = OpenSearch(text.strip())
        if isinstance(outcome, Superseded):
            return
        result = self.session.handle_outcome(outcome)
        if isinstance(result.value, OpenSearch):
            self._show_product_list(result.value.term)
            return
        if self._report(result, success_message=f"Ajouté : {outcome.entry.designation}"):
            self.code_var.set("")

    def _show_product_list(self, term=""):
        """Manual search popup, filtered live by its own search box"""
        if self._product_popup is not None and self._product_popup.winfo_exists():
            self._product_popup.destroy()

        popup = tk.Toplevel(self.root)
        self._product_popup = popup
        popup.title("Liste des produits")
        popup.geometry("720x420")
        popup.transient(self.root)

        search_var = tk.StringVar(value=term)
        search_frame = ttk.Frame(popup)
        search_frame.pack(fill=tk.X, padx=5, pady=5)
        ttk.Label(search_frame, text="Rechercher :").pack(side=tk.LEFT, padx=5)
        search_entry = ttk.Entry(search_frame, textvariable=search_var)
        search_entry.pack(side=tk.LEFT, fill=tk.X, expand=True, padx=5)

        cols = ("Désignation", "Catégorie", "Stock", "Prix", "Code-barres")
        tv = ttk.Treeview(popup, columns=cols, show='headings', height=12, selectmode="browse")
        for c in cols:
            tv.heading(c, text=c)
        tv.column("Désignation", width=240)
        tv.column("Stock", width=60, anchor=tk.CENTER)
        tv.column("Prix", width=110, anchor=tk.E)
        scrollbar = ttk.Scrollbar(popup, orient="vertical", command=tv.yview)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)
        tv.configure(yscrollcommand=scrollbar.set)
        tv.pack(expand=True, fill=tk.BOTH, padx=5, pady=5)

        entries = {}

        def populate(*args):
            tv.delete(*tv.get_children())
            entries.clear()
            for i, entry in enumerate(self.session.search(search_var.get().strip())):
                iid = str(i)
                entries[iid] = entry
                tv.insert("", tk.END, iid=iid, values=(
                    entry.designation, entry.category, entry.stock_quantity,
                    format_currency(entry.unit_price, self.currency), entry.barcode
                ))

        def choose(*args):
            selected = tv.selection()
            if not selected:
                return
            entry = entries[selected[0]]
            if self._report(self.session.add_product(entry), success_message=f"Ajouté : {entry.designation}"):
                self.code_var.set("")
                popup.destroy()

        search_var.trace_add("write", populate)
        tv.bind("<Double-1>", choose)
        tv.bind("<Return>", choose)
        populate()

        btn_frame = ttk.Frame(popup)
        btn_frame.pack(fill=tk.X, padx=5, pady=5)
        ttk.Button(btn_frame, text="Ajouter", command=choose, bootstyle="success").pack(side=tk.LEFT, padx=5)
        ttk.Button(btn_frame, text="Fermer", command=popup.destroy, bootstyle="secondary").pack(side=tk.RIGHT, padx=5)
        search_entry.focus_set()
        search_entry.icursor(tk.END)

    # --- Client ---

    def _show_client_picker(self):
        popup = tk.Toplevel(self.root)
        popup.title("Sélection du client")
        popup.geometry("640x400")
        popup.transient(self.root)
        popup.grab_set()

        search_var = tk.StringVar()
        search_entry = ttk.Entry(popup, textvariable=search_var)
        search_entry.pack(fill=tk.X, padx=5, pady=5)

        cols = ("Nom", "Téléphone", "Email", "Solde", "Points", "Remise")
        tv = ttk.Treeview(popup, columns=cols, show='headings', height=10, selectmode="browse")
        for c in cols:
            tv.heading(c, text=c)
            tv.column(c, width=90)
        tv.column("Nom", width=160)
        tv.column("Email", width=160)
        tv.pack(expand=True, fill=tk.BOTH, padx=5, pady=5)

        clients = {}

        def populate(*args):
            tv.delete(*tv.get_children())
            clients.clear()
            for i, client in enumerate(self.session.find_clients(search_var.get().strip())):
                clients[str(i)] = client
                tv.insert("", tk.END, iid=str(i), values=(
                    client.name, client.phone, client.email,
                    format_currency(client.balance, self.currency),
                    client.loyalty_points, f"{client.discount_percent} %"
                ))

        def choose(*args):
            selected = tv.selection()
            if not selected:
                return
            client = clients[selected[0]]
            self._report(self.session.select_client(client), success_message=f"Client : {client.name}")
            popup.destroy()

        search_var.trace_add("write", populate)
        tv.bind("<Double-1>", choose)
        populate()

        btn_frame = ttk.Frame(popup)
        btn_frame.pack(fill=tk.X, padx=5, pady=5)
        ttk.Button(btn_frame, text="Choisir", command=choose, bootstyle="success").pack(side=tk.LEFT, padx=5)
        ttk.Button(btn_frame, text="Aucun client",
                   command=lambda: (self._report(self.session.select_client(None)), popup.destroy()),
                   bootstyle="secondary").pack(side=tk.LEFT, padx=5)
        ttk.Button(btn_frame, text="Fermer", command=popup.destroy, bootstyle="secondary").pack(side=tk.RIGHT, padx=5)
        search_entry.focus_set()

    # --- Cart ---

    def _on_cart_select(self, event):
        selected = self.cart_tv.selection()
        index = int(selected[0]) if selected else None
        if index != self.session.selected_index:
            self.session.select_row(index)
            self.delete_btn.configure(state=tk.NORMAL if index is not None else tk.DISABLED)

    def _add_cart_context_menu(self):
        """Add right-click context menu to cart treeview"""
        self.cart_context_menu = tk.Menu(self.root, tearoff=0)
        self.cart_context_menu.add_command(label="Supprimer la ligne", command=self._remove_selected)
        self.cart_context_menu.add_command(label="Modifier quantité", command=self._edit_quantity)
        self.cart_context_menu.add_separator()
        self.cart_context_menu.add_command(label="Annuler la vente", command=self._clear_transaction)
        self.cart_tv.bind("<Button-3>", self._show_cart_context_menu)

    def _show_cart_context_menu(self, event):
        iid = self.cart_tv.identify_row(event.y)
        if iid:
            self.cart_tv.selection_set(iid)
            self.cart_context_menu.post(event.x_root, event.y_root)

    def _remove_selected(self):
        self._report(self.session.remove_selected(), success_message="Ligne supprimée")

    def _edit_quantity(self):
        index = self.session.selected_index
        if index is None:
            messagebox.showinfo("Sélection", "Veuillez sélectionner une ligne", parent=self.root)
            return
        item = self.session.items[index]
        new_qty = simpledialog.askinteger("Quantité", f"Quantité pour {item.designation} :",
                                          initialvalue=item.quantity, minvalue=1, parent=self.root)
        if new_qty is not None:
            self._report(self.session.change_quantity(index, new_qty),
                         success_message=f"Quantité : {new_qty}")

    def _clear_transaction(self):
        if not self.session.items:
            return
        if messagebox.askyesno("Annuler", "Annuler la vente en cours ?", parent=self.root):
            self._report(self.session.clear(), success_message="Vente annulée")

    def _validate_transaction(self):
        result = self.session.validate()
        if result.ok:
            sale = result.value
            messagebox.showinfo("Vente", f"Vente validée : {format_currency(sale.total, self.currency)}",
                                parent=self.root)
        self._report(result, success_message="Vente validée")

    def _on_close(self):
        self.resolver.shutdown()
        self.root.destroy()

    def run(self):
        self.root.mainloop()
