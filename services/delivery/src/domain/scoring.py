# src/domain/scoring.py
"""
Heurística de asignación de repartidores.

Cada repartidor recibe una puntuación (menor es mejor) que combina su
disponibilidad, su carga activa y la afinidad con el barrio de entrega:

    offline  -> +10000
    busy     -> +5000
    carga    -> +100 por cada pedido Bekliyor/Yolda asignado
    región   -> -2000 si el barrio está contenido en serviceRegion

El orden resultante es estable: a igual puntuación se respeta el orden
original de la lista.
"""
from typing import Iterable, List, Optional, Sequence, Dict, Any

from .entities import Courier, CourierStatus, Order

OFFLINE_PENALTY = 10000
BUSY_PENALTY = 5000
LOAD_PENALTY = 100
REGION_BONUS = 2000


def active_load(courier_id: str, orders: Iterable[Order]) -> int:
    """Cantidad de pedidos del repartidor en estado Bekliyor o Yolda."""
    return sum(1 for order in orders if order.courier_id == courier_id and order.is_active)


def matches_region(courier: Courier, neighborhood: Optional[str]) -> bool:
    """El barrio (sin distinguir mayúsculas) debe estar contenido en serviceRegion."""
    if not neighborhood or not courier.service_region:
        return False
    return neighborhood.lower() in courier.service_region.lower()


def score_courier(courier: Courier, orders: Sequence[Order], neighborhood: Optional[str] = "") -> int:
    score = 0
    if courier.status == CourierStatus.OFFLINE:
        score += OFFLINE_PENALTY
    elif courier.status == CourierStatus.BUSY:
        score += BUSY_PENALTY
    score += LOAD_PENALTY * active_load(courier.id, orders)
    if matches_region(courier, neighborhood):
        score -= REGION_BONUS
    return score


def rank_couriers(couriers: Sequence[Courier], orders: Sequence[Order],
                  neighborhood: Optional[str] = "") -> List[Courier]:
    """Repartidores ordenados de mejor a peor candidato. No modifica las entradas."""
    return sorted(couriers, key=lambda courier: score_courier(courier, orders, neighborhood))


def suggest_courier(couriers: Sequence[Courier], orders: Sequence[Order],
                    neighborhood: Optional[str] = "") -> Optional[Courier]:
    ranking = rank_couriers(couriers, orders, neighborhood)
    return ranking[0] if ranking else None


def ranking_report(couriers: Sequence[Courier], orders: Sequence[Order],
                   neighborhood: Optional[str] = "") -> List[Dict[str, Any]]:
    """Ranking con el detalle de puntuación, para el desplegable de selección manual."""
    return [
        {
            **courier.to_dict(),
            "score": score_courier(courier, orders, neighborhood),
            "activeLoad": active_load(courier.id, orders),
            "regionMatch": matches_region(courier, neighborhood),
        }
        for courier in rank_couriers(couriers, orders, neighborhood)
    ]
