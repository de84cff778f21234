r"""backend\app\services\inventory_service.py

Document store for the back office: products, orders, purchase orders,
suppliers, festivals, deals, user profiles and notifications.

Documents live in one JSON file keyed by collection and id.  Every write
rewrites the file atomically under a lock.  When ``path`` is ``None`` the
store keeps everything in memory, which is what the tests use.

Every stock change is staged with ``_stage_stock`` and applied with
``_commit_stock``.  Multi-product writes (orders, received purchase orders)
stage every line first, so a rejected line leaves all products untouched.
Low-stock notifications are raised in one place after the commit.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import threading
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, Union

from ..core.errors import InvalidInputError, NotFoundError
from ..models.schemas import (
    AdminUserUpdate,
    Deal,
    DealCreate,
    DealUpdate,
    Festival,
    FestivalCreate,
    FestivalUpdate,
    Notification,
    NotificationType,
    Order,
    OrderCreate,
    OrderStatus,
    OwnProfileUpdate,
    Product,
    ProductCreate,
    ProductUpdate,
    PromotionKind,
    PurchaseOrder,
    PurchaseOrderCreate,
    StockObservation,
    Supplier,
    SupplierCreate,
    SupplierUpdate,
    UserProfile,
)
from .series_codec import append_observation, decode_series, encode_series

LOGGER = logging.getLogger(__name__)

COLLECTIONS = (
    "products",
    "orders",
    "purchase_orders",
    "suppliers",
    "festivals",
    "deals",
    "users",
    "notifications",
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _observation_date(as_of: Optional[date]) -> date:
    today = _now().date()
    if as_of is None:
        return today
    if as_of > today:
        raise InvalidInputError(f"Stock cannot be recorded for a future date ({as_of.isoformat()}).")
    return as_of


def _check_date_range(start: date, end: date) -> None:
    if end < start:
        raise InvalidInputError("The end date cannot be before the start date.")


Promotion = Union[Festival, Deal]

_PROMOTIONS: Dict[str, Tuple[str, Type[Promotion]]] = {
    "festival": ("festivals", Festival),
    "deal": ("deals", Deal),
}


class InventoryStore:
    """JSON-document store with CRUD, projection and inventory workflows."""

    def __init__(
        self,
        path: Optional[str | Path] = None,
        default_low_stock_threshold: int = 10,
    ) -> None:
        self.path = Path(path) if path else None
        self.default_low_stock_threshold = default_low_stock_threshold
        self._lock = threading.RLock()
        self._docs: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in COLLECTIONS}
        self._load()

    # ------------------------------------------------------------------
    # Persistence

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as handle:
            loaded = json.load(handle) or {}
        for name in COLLECTIONS:
            docs = loaded.get(name)
            if isinstance(docs, dict):
                self._docs[name] = docs
        LOGGER.info(
            "Loaded document store from %s (%d products)", self.path, len(self._docs["products"])
        )

    def _flush(self) -> None:
        if self.path is None:
            return
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._docs, handle, separators=(",", ":"))
            shutil.move(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def close(self) -> None:
        with self._lock:
            self._flush()

    # ------------------------------------------------------------------
    # Generic document operations

    def _collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        try:
            return self._docs[collection]
        except KeyError as exc:
            raise NotFoundError(f"Unknown collection '{collection}'.") from exc

    def list(self, collection: str, fields: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        """Return every document in ``collection``, optionally projected to ``fields``."""

        with self._lock:
            docs = [dict(doc) for doc in self._collection(collection).values()]
        if fields is None:
            return docs
        wanted = set(fields) | {"id"}
        return [{key: value for key, value in doc.items() if key in wanted} for doc in docs]

    def get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
        if doc is None:
            raise NotFoundError(f"No document '{doc_id}' in {collection}.")
        return dict(doc)

    def create(self, collection: str, data: Dict[str, Any], doc_id: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            docs = self._collection(collection)
            key = doc_id or _new_id()
            doc = {**data, "id": key}
            docs[key] = doc
            self._flush()
            return dict(doc)

    def update(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            docs = self._collection(collection)
            if doc_id not in docs:
                raise NotFoundError(f"No document '{doc_id}' in {collection}.")
            docs[doc_id] = {**docs[doc_id], **updates, "id": docs[doc_id]["id"]}
            self._flush()
            return dict(docs[doc_id])

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            docs = self._collection(collection)
            if docs.pop(doc_id, None) is None:
                raise NotFoundError(f"No document '{doc_id}' in {collection}.")
            self._flush()

    # ------------------------------------------------------------------
    # Products

    def list_products(self) -> List[Product]:
        return [Product.model_validate(doc) for doc in self.list("products")]

    def get_product(self, product_id: str) -> Product:
        return Product.model_validate(self.get("products", product_id))

    def add_product(self, data: ProductCreate, as_of: Optional[date] = None) -> Product:
        """Create a product whose history starts with its opening stock."""

        now = _now()
        threshold = data.low_stock_threshold
        if threshold is None:
            threshold = self.default_low_stock_threshold
        opening = StockObservation(date=_observation_date(as_of), level=data.stock)
        with self._lock:
            doc = self.create(
                "products",
                {
                    **data.model_dump(mode="json", exclude={"low_stock_threshold"}),
                    "low_stock_threshold": threshold,
                    "historical_data": encode_series([opening]),
                    "created_at": now.isoformat(),
                    "updated_at": now.isoformat(),
                },
            )
            product = Product.model_validate(doc)
            self._check_low_stock(product, "was added with low stock")
        return product

    def bulk_add_products(self, items: Sequence[ProductCreate]) -> List[Product]:
        with self._lock:
            return [self.add_product(item) for item in items]

    def update_product(self, product_id: str, updates: ProductUpdate) -> Product:
        changes = updates.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        changes["updated_at"] = _now().isoformat()
        return Product.model_validate(self.update("products", product_id, changes))

    def delete_product(self, product_id: str) -> None:
        self.delete("products", product_id)

    def delete_products(self, product_ids: Iterable[str]) -> int:
        """Delete every listed product; missing ids are reported before anything is removed."""

        ids = list(dict.fromkeys(product_ids))
        with self._lock:
            missing = [pid for pid in ids if pid not in self._docs["products"]]
            if missing:
                raise NotFoundError(f"Unknown product id(s): {', '.join(missing)}.")
            for pid in ids:
                del self._docs["products"][pid]
            self._flush()
        return len(ids)

    def get_historical_series(self, product_id: str) -> List[StockObservation]:
        return decode_series(self.get_product(product_id).historical_data)

    def set_stock(self, product_id: str, level: int, as_of: Optional[date] = None) -> Product:
        """Set on-hand stock and record the snapshot in the product's history."""

        if level < 0:
            raise InvalidInputError("Stock level cannot be negative.")
        with self._lock:
            (product,) = self._commit_stock([self._stage_stock(product_id, level, as_of)])
            self._flush()
        return product

    def _stage_stock(self, product_id: str, level: int, as_of: Optional[date] = None) -> Dict[str, Any]:
        """Return the product document as it would be after recording ``level``.

        Nothing is written; every check that can reject the change runs here.
        """

        doc = self._docs["products"].get(product_id)
        if doc is None:
            raise NotFoundError(f"No document '{product_id}' in products.")
        series = append_observation(
            decode_series(doc.get("historical_data")),
            StockObservation(date=_observation_date(as_of), level=level),
        )
        staged = {
            **doc,
            "stock": level,
            "historical_data": encode_series(series),
            "updated_at": _now().isoformat(),
        }
        Product.model_validate(staged)
        return staged

    def _commit_stock(self, staged: Sequence[Dict[str, Any]]) -> List[Product]:
        products = []
        for doc in staged:
            self._docs["products"][doc["id"]] = doc
            products.append(Product.model_validate(doc))
        for product in products:
            self._check_low_stock(product, "is running low on stock")
        return products

    def _check_low_stock(self, product: Product, phrase: str) -> None:
        if product.stock <= product.low_stock_threshold:
            self.add_notification(
                "Low Stock Warning",
                f"{product.name} {phrase} ({product.stock} left).",
                "low-stock",
                link=f"/products/{product.id}",
            )

    # ------------------------------------------------------------------
    # Orders

    def list_orders(self) -> List[Order]:
        orders = [Order.model_validate(doc) for doc in self.list("orders")]
        return sorted(orders, key=lambda order: order.order_date, reverse=True)

    def add_order(self, data: OrderCreate) -> Order:
        """Record an order and take its quantities out of stock."""

        with self._lock:
            products = self._docs["products"]
            required: Dict[str, int] = {}
            for item in data.items:
                required[item.product_id] = required.get(item.product_id, 0) + item.quantity
            for product_id, quantity in required.items():
                doc = products.get(product_id)
                if doc is None:
                    raise NotFoundError(f"No document '{product_id}' in products.")
                if doc["stock"] < quantity:
                    raise InvalidInputError(
                        f"Insufficient stock for {doc['name']}: {doc['stock']} available, {quantity} ordered."
                    )
            staged = [
                self._stage_stock(product_id, products[product_id]["stock"] - quantity)
                for product_id, quantity in required.items()
            ]
            self._commit_stock(staged)

            subtotal = sum(item.price * item.quantity for item in data.items)
            total = max(subtotal + data.delivery_charge - data.discount_amount, 0.0)
            doc = self.create(
                "orders",
                {
                    **data.model_dump(mode="json"),
                    "total_amount": round(total, 2),
                    "status": "Pending",
                    "order_date": _now().isoformat(),
                    "completed_at": None,
                },
            )
            order = Order.model_validate(doc)
            self.add_notification(
                "New Order",
                f"Order {order.id} was placed for {order.total_amount:.2f}.",
                "new-order",
                link=f"/orders/{order.id}",
            )
        return order

    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        changes: Dict[str, Any] = {"status": status}
        if status == "Delivered":
            changes["completed_at"] = _now().isoformat()
        return Order.model_validate(self.update("orders", order_id, changes))

    # ------------------------------------------------------------------
    # Suppliers

    def list_suppliers(self) -> List[Supplier]:
        return [Supplier.model_validate(doc) for doc in self.list("suppliers")]

    def get_supplier(self, supplier_id: str) -> Supplier:
        return Supplier.model_validate(self.get("suppliers", supplier_id))

    def add_supplier(self, data: SupplierCreate) -> Supplier:
        doc = self.create("suppliers", {**data.model_dump(mode="json"), "created_at": _now().isoformat()})
        return Supplier.model_validate(doc)

    def update_supplier(self, supplier_id: str, updates: SupplierUpdate) -> Supplier:
        doc = self.update("suppliers", supplier_id, updates.model_dump(mode="json", exclude_unset=True))
        return Supplier.model_validate(doc)

    def delete_supplier(self, supplier_id: str) -> None:
        self.delete("suppliers", supplier_id)

    # ------------------------------------------------------------------
    # Festivals and deals

    def list_promotions(self, kind: PromotionKind) -> List[Promotion]:
        """Active campaigns first, each group newest start date first."""

        collection, model = _PROMOTIONS[kind]
        promotions = [model.model_validate(doc) for doc in self.list(collection)]
        return sorted(promotions, key=lambda p: (not p.is_active, -p.start_date.toordinal()))

    def get_promotion(self, kind: PromotionKind, promotion_id: str) -> Promotion:
        collection, model = _PROMOTIONS[kind]
        return model.model_validate(self.get(collection, promotion_id))

    def add_promotion(self, kind: PromotionKind, data: Union[FestivalCreate, DealCreate]) -> Promotion:
        collection, model = _PROMOTIONS[kind]
        _check_date_range(data.start_date, data.end_date)
        now = _now().isoformat()
        payload = {
            **data.model_dump(mode="json"),
            "product_ids": list(dict.fromkeys(data.product_ids)),
            "created_at": now,
            "updated_at": now,
        }
        return model.model_validate(self.create(collection, payload))

    def update_promotion(
        self,
        kind: PromotionKind,
        promotion_id: str,
        updates: Union[FestivalUpdate, DealUpdate],
    ) -> Promotion:
        collection, model = _PROMOTIONS[kind]
        changes = updates.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        changes["updated_at"] = _now().isoformat()
        with self._lock:
            merged = model.model_validate({**self.get(collection, promotion_id), **changes})
            _check_date_range(merged.start_date, merged.end_date)
            return model.model_validate(self.update(collection, promotion_id, changes))

    def delete_promotion(self, kind: PromotionKind, promotion_id: str) -> None:
        collection, _ = _PROMOTIONS[kind]
        self.delete(collection, promotion_id)

    def add_products_to_promotion(
        self, kind: PromotionKind, promotion_id: str, product_ids: Iterable[str]
    ) -> Promotion:
        """Add ``product_ids`` to a festival or deal; ids already listed are kept once."""

        collection, model = _PROMOTIONS[kind]
        ids = list(dict.fromkeys(product_ids))
        with self._lock:
            current = self.get(collection, promotion_id)
            missing = [pid for pid in ids if pid not in self._docs["products"]]
            if missing:
                raise NotFoundError(f"Unknown product id(s): {', '.join(missing)}.")
            merged = list(dict.fromkeys([*current.get("product_ids", []), *ids]))
            doc = self.update(
                collection,
                promotion_id,
                {"product_ids": merged, "updated_at": _now().isoformat()},
            )
        LOGGER.info("Added %d product(s) to %s %s", len(ids), kind, promotion_id)
        return model.model_validate(doc)

    # ------------------------------------------------------------------
    # Purchase orders

    def list_purchase_orders(self) -> List[PurchaseOrder]:
        orders = [PurchaseOrder.model_validate(doc) for doc in self.list("purchase_orders")]
        return sorted(orders, key=lambda po: po.created_at, reverse=True)

    def add_purchase_order(self, data: PurchaseOrderCreate) -> PurchaseOrder:
        self.get_supplier(data.supplier_id)
        total = round(sum(item.quantity * item.cost_per_item for item in data.items), 2)
        with self._lock:
            doc = self.create(
                "purchase_orders",
                {
                    **data.model_dump(mode="json"),
                    "status": "Pending",
                    "total_cost": total,
                    "created_at": _now().isoformat(),
                    "received_at": None,
                },
            )
            self.add_notification(
                "New Purchase Order",
                f"A new PO has been created (Total: {total:.2f}).",
                "new-order",
                link="/purchase-orders",
            )
        return PurchaseOrder.model_validate(doc)

    def receive_purchase_order(self, po_id: str, as_of: Optional[date] = None) -> PurchaseOrder:
        """Mark a purchase order received and add its quantities to stock."""

        with self._lock:
            po = PurchaseOrder.model_validate(self.get("purchase_orders", po_id))
            if po.status == "Received":
                raise InvalidInputError(f"Purchase order {po_id} has already been received.")
            products = self._docs["products"]
            received: Dict[str, int] = {}
            for item in po.items:
                if item.product_id not in products:
                    raise NotFoundError(f"No document '{item.product_id}' in products.")
                received[item.product_id] = received.get(item.product_id, 0) + item.quantity
            staged = [
                self._stage_stock(product_id, products[product_id]["stock"] + quantity, as_of)
                for product_id, quantity in received.items()
            ]
            self._commit_stock(staged)
            doc = self.update(
                "purchase_orders", po_id, {"status": "Received", "received_at": _now().isoformat()}
            )
        return PurchaseOrder.model_validate(doc)

    # ------------------------------------------------------------------
    # Users

    def list_users(self) -> List[UserProfile]:
        return [UserProfile.model_validate(doc) for doc in self.list("users")]

    def find_user(self, uid: str) -> Optional[UserProfile]:
        with self._lock:
            doc = self._docs["users"].get(uid)
        return UserProfile.model_validate(doc) if doc is not None else None

    def get_user(self, uid: str) -> UserProfile:
        return UserProfile.model_validate(self.get("users", uid))

    def ensure_user(self, profile: UserProfile) -> UserProfile:
        """Create ``profile`` unless a profile with the same uid already exists."""

        existing = self.find_user(profile.uid)
        if existing is not None:
            return existing
        now = _now()
        payload = profile.model_copy(update={"created_at": now, "updated_at": now})
        doc = self.create("users", payload.model_dump(mode="json"), doc_id=profile.uid)
        return UserProfile.model_validate(doc)

    def update_user(self, uid: str, updates: AdminUserUpdate | OwnProfileUpdate) -> UserProfile:
        changes = updates.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        changes["updated_at"] = _now().isoformat()
        return UserProfile.model_validate(self.update("users", uid, changes))

    def update_own_profile(self, uid: str, updates: OwnProfileUpdate) -> UserProfile:
        """Apply a self-service edit; role and status are not part of the payload."""

        return self.update_user(uid, OwnProfileUpdate.model_validate(updates.model_dump(exclude_unset=True)))

    # ------------------------------------------------------------------
    # Notifications

    def add_notification(
        self,
        title: str,
        description: str,
        kind: NotificationType,
        link: Optional[str] = None,
    ) -> Notification:
        doc = self.create(
            "notifications",
            {
                "title": title,
                "description": description,
                "type": kind,
                "is_read": False,
                "created_at": _now().isoformat(),
                "link": link,
            },
        )
        return Notification.model_validate(doc)

    def list_notifications(self, unread_only: bool = False) -> List[Notification]:
        notes = [Notification.model_validate(doc) for doc in self.list("notifications")]
        if unread_only:
            notes = [note for note in notes if not note.is_read]
        return sorted(notes, key=lambda note: note.created_at, reverse=True)

    def mark_notification_read(self, notification_id: str) -> Notification:
        return Notification.model_validate(self.update("notifications", notification_id, {"is_read": True}))

    def mark_all_notifications_read(self) -> int:
        with self._lock:
            unread = [doc for doc in self._docs["notifications"].values() if not doc.get("is_read")]
            for doc in unread:
                doc["is_read"] = True
            self._flush()
        return len(unread)
