from __future__ import annotations

from routingplan.data.db import Db
from routingplan.data.repository import RoutingRepository

__all__ = ["Db", "RoutingRepository"]
