from __future__ import annotations

import uuid
from typing import Any


class Service:
    """Optional base class for services constructed with their capability view.

    Keeps the view on ``self.services`` so members can reach their siblings
    lazily, and gives every instance a unique ``service_id``::

        class UserRepository(Service):
            def find(self, user_id):
                return self.services.database.fetch_user(user_id)

    """

    services: Any
    service_id: uuid.UUID

    def __init__(self, services: Any) -> None:
        self.services = services
        self.service_id = uuid.uuid4()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.service_id}>"
