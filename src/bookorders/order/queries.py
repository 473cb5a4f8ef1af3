"""Read side for orders: detail, customer history, admin and seller views.

Lists return ``{"<key>": [...], "pagination": {"current", "pages", "total"}}``.
Orders are read straight from the Order repository; the embedded items and
seller payments are the shape downstream reports aggregate over.
"""

import math

from protean.utils.globals import current_domain

from bookorders.order.lifecycle import load_order
from bookorders.order.order import Order

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
_SCAN_CHUNK = 100


def _iso(value):
    return value.isoformat() if value else None


def _pagination(page, page_size, total):
    return {"current": page, "pages": math.ceil(total / page_size) if total else 0, "total": total}


def _clamp(page, page_size):
    return max(1, int(page)), max(1, min(int(page_size), MAX_PAGE_SIZE))


def seller_payment_to_dict(payment) -> dict:
    return {
        "seller_id": str(payment.seller_id),
        "items_total": payment.items_total,
        "shipping_charges": payment.shipping_charges,
        "commission_rate": payment.commission_rate,
        "admin_commission": payment.admin_commission,
        "net_amount": payment.net_amount,
        "payment_status": payment.payment_status,
        "paid_by": payment.paid_by,
        "paid_at": _iso(payment.paid_at),
        "notes": payment.notes,
    }


def order_to_dict(order: Order) -> dict:
    address = order.shipping_address
    coupon = order.applied_coupon
    return {
        "order_id": str(order.id),
        "customer_id": str(order.customer_id),
        "status": order.status,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "items": [
            {
                "book_id": str(item.book_id),
                "title": item.title,
                "seller_id": str(item.seller_id),
                "quantity": item.quantity,
                "unit_price_at_purchase": item.unit_price_at_purchase,
            }
            for item in order.sorted_items()
        ],
        "shipping_address": {
            "street": address.street,
            "city": address.city,
            "state": address.state,
            "postal_code": address.postal_code,
            "country": address.country,
            "landmark": address.landmark,
        }
        if address
        else None,
        "applied_coupon": {
            "code": coupon.code,
            "description": coupon.description,
            "type": coupon.discount_type,
            "value": coupon.value,
        }
        if coupon
        else None,
        "subtotal": order.subtotal,
        "coupon_discount": order.coupon_discount,
        "shipping_cost": order.shipping_cost,
        "total": order.total,
        "currency": order.currency,
        "refund_eligible": order.refund_eligible,
        "refund_amount": order.refund_amount,
        "refund_reason": order.refund_reason,
        "refunded_at": _iso(order.refunded_at),
        "tracking_number": order.tracking_number,
        "estimated_delivery": _iso(order.estimated_delivery),
        "delivered_at": _iso(order.delivered_at),
        "cancellation_reason": order.cancellation_reason,
        "seller_payments": [seller_payment_to_dict(p) for p in order.sorted_seller_payments()],
        "status_history": [
            {
                "status": entry.status,
                "changed_by": entry.changed_by,
                "changed_at": _iso(entry.changed_at),
                "note": entry.note,
            }
            for entry in order.sorted_history()
        ],
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }


def _all_orders(**filters) -> list[Order]:
    """Every order matching ``filters``, newest first."""
    dao = current_domain.repository_for(Order)._dao
    orders: list[Order] = []
    offset = 0
    while True:
        chunk = dao.query.filter(**filters).order_by("-created_at").offset(offset).limit(_SCAN_CHUNK).all().items
        orders.extend(chunk)
        if len(chunk) < _SCAN_CHUNK:
            return orders
        offset += _SCAN_CHUNK


def _order_page(page, page_size, **filters):
    """One page of matching orders, newest first, with the total match count."""
    dao = current_domain.repository_for(Order)._dao
    result = (
        dao.query.filter(**filters)
        .order_by("-created_at")
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return result.items, result.total


def _page(orders, page, page_size):
    start = (page - 1) * page_size
    return orders[start : start + page_size]


def get_order_detail(order_id) -> dict:
    return order_to_dict(load_order(order_id))


def list_customer_orders(customer_id, page=1, page_size=DEFAULT_PAGE_SIZE) -> dict:
    page, page_size = _clamp(page, page_size)
    orders, total = _order_page(page, page_size, customer_id=str(customer_id))
    return {
        "orders": [order_to_dict(o) for o in orders],
        "pagination": _pagination(page, page_size, total),
    }


def list_orders(status=None, page=1, page_size=DEFAULT_PAGE_SIZE) -> dict:
    """Admin listing, optionally restricted to one status."""
    page, page_size = _clamp(page, page_size)
    filters = {"status": status} if status else {}
    orders, total = _order_page(page, page_size, **filters)
    return {
        "orders": [order_to_dict(o) for o in orders],
        "pagination": _pagination(page, page_size, total),
    }


def list_seller_settlements(seller_id, payment_status=None, page=1, page_size=DEFAULT_PAGE_SIZE) -> dict:
    """A seller's settlements across orders, newest order first."""
    page, page_size = _clamp(page, page_size)
    seller_id = str(seller_id)
    payments = []
    for order in _all_orders(seller_index__contains=f"|{seller_id}|"):
        payment = next((p for p in order.seller_payments if str(p.seller_id) == seller_id), None)
        if payment is None:
            # Not settled yet (pending gateway payment or cancelled before confirmation)
            continue
        if payment_status and payment.payment_status != payment_status:
            continue
        payments.append(
            {
                "order_id": str(order.id),
                "order_status": order.status,
                "created_at": _iso(order.created_at),
                "items": [
                    {
                        "book_id": str(item.book_id),
                        "title": item.title,
                        "quantity": item.quantity,
                        "unit_price_at_purchase": item.unit_price_at_purchase,
                    }
                    for item in order.sorted_items()
                    if str(item.seller_id) == seller_id
                ],
                **seller_payment_to_dict(payment),
            }
        )
    return {
        "payments": _page(payments, page, page_size),
        "pagination": _pagination(page, page_size, len(payments)),
    }
