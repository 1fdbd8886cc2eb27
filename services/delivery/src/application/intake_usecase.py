# src/application/intake_usecase.py
import logging
from typing import Dict, Any, Optional

from src.application.errors import ValidationError
from src.application.store import EntityStore
from src.application.use_cases import parse_enum
from src.domain.entities import (
    Customer,
    InventoryItem,
    Order,
    OrderItem,
    OrderSource,
    OrderStatus,
    PaymentMethod,
    normalize_phone,
)
from src.domain.lifecycle import generate_customer_id
from src.domain.scoring import suggest_courier

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER_NAME = "Müşteri"


class IngestExternalOrderUseCase:
    """
    Caso de uso: Registrar pedidos que llegan por webhook (robot telefónico,
    WhatsApp o llamadas transcritas). El payload usa los nombres de campo del
    agente de voz: telefon, musteri_adi, urun, adet, adres, siparis_kaynagi, not.
    Son obligatorios telefon, urun, adet y adres.
    """

    def __init__(self, store: EntityStore, default_price: float = 40.0):
        self.store = store
        self.default_price = default_price

    def _find_product(self, product_name: str) -> Optional[InventoryItem]:
        """Coincidencia exacta o parcial (sin mayúsculas) sobre el nombre del producto."""
        if not product_name:
            return None
        wanted = product_name.lower()
        return next(
            (item for item in self.store.snapshot.inventory
             if item.name == product_name or wanted in item.name.lower()),
            None,
        )

    def execute(self, data: Dict[str, Any]) -> Order:
        phone = data.get("telefon") or ""
        requested = str(data.get("urun") or "").strip()
        address = (data.get("adres") or "").strip()
        if not phone or not requested or not data.get("adet") or not address:
            raise ValidationError("Eksik sipariş bilgileri: telefon, urun, adet y adres son obligatorios")
        try:
            quantity = int(data["adet"])
        except (TypeError, ValueError) as e:
            raise ValidationError(f"adet inválido: '{data['adet']}'") from e
        if quantity <= 0:
            raise ValidationError(f"adet inválido: '{data['adet']}'")

        clean_phone = normalize_phone(phone)
        source = parse_enum(OrderSource, data.get("siparis_kaynagi") or OrderSource.PHONE.value, "siparis_kaynagi")

        product = self._find_product(requested)
        price = (product.sale_price if product else 0) or self.default_price
        item = OrderItem(
            product_id=product.id if product else "",
            product_name=product.name if product else requested,
            quantity=quantity,
            price=price,
        )

        # La dirección libre se interpreta como 'ilçe, mahalle, resto'
        parts = [part.strip() for part in address.split(",")]
        district = parts[0] if len(parts) > 1 else ""
        neighborhood = parts[1] if len(parts) > 1 else ""
        street = ", ".join(parts[2:]) if len(parts) > 2 else (parts[0] if len(parts) == 1 else "")

        snapshot = self.store.snapshot
        courier = suggest_courier(snapshot.couriers, snapshot.orders, neighborhood)
        existing = snapshot.find_customer_by_phone(clean_phone)
        # musteri_adi es opcional para el robot de voz
        name = (data.get("musteri_adi") or "").strip() or (existing.name if existing else "") or DEFAULT_CUSTOMER_NAME
        note = data.get("not") or ""

        customer = Customer(
            id=existing.id if existing else generate_customer_id(),
            phone=clean_phone,
            name=name,
            district=district,
            neighborhood=neighborhood,
            street=street,
            last_note=note,
        )
        order = Order(
            id="",
            customer_id=customer.id,
            customer_name=name,
            phone=clean_phone,
            address=address,
            items=(item,),
            total_amount=price * quantity,
            source=source,
            status=OrderStatus.PENDING,
            courier_id=courier.id if courier else None,
            courier_name=courier.name if courier else None,
            note=note,
            payment_method=PaymentMethod.CASH,
        )
        created = self.store.create_order(order, customer)
        logger.info("Pedido externo %s registrado desde %s", created.id, source.value)
        return created
