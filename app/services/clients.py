"""Client CRUD. Names are unique among active clients; delete is a soft delete."""

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, NotFound
from app.models import Client
from app.schemas.clients import ClientCreate, ClientOut, ClientUpdate
from app.schemas.common import PageMeta
from app.services.pagination import paginate, parse_sort, resolve_page

logger = logging.getLogger(__name__)

CLIENT_SORT_FIELDS = {
    "name": Client.name,
    "contact_person": Client.contact_person,
    "created_at": Client.created_at,
}


def _name_taken() -> Conflict:
    return Conflict("Client name already exists", details=[{"field": "name", "issue": "Already exists"}])


class ClientService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _active_name_exists(self, name: str, exclude_id: int | None = None) -> bool:
        query = self.session.query(Client.id).filter(Client.name == name, Client.is_active.is_(True))
        if exclude_id is not None:
            query = query.filter(Client.id != exclude_id)
        return query.first() is not None

    def _save(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise _name_taken() from e

    def _load(self, client_id: int) -> Client:
        client = self.session.get(Client, client_id)
        if client is None:
            raise NotFound("Client not found")
        return client

    def create_client(self, data: ClientCreate) -> ClientOut:
        if self._active_name_exists(data.name):
            raise _name_taken()
        client = Client(
            name=data.name,
            contact_person=data.contact_person,
            contact_email=str(data.contact_email),
            is_active=True,
        )
        self.session.add(client)
        self._save()
        logger.info("Client created", extra={"client_id": client.id})
        return ClientOut.model_validate(client)

    def get_client(self, client_id: int) -> ClientOut:
        return ClientOut.model_validate(self._load(client_id))

    def update_client(self, client_id: int, data: ClientUpdate) -> ClientOut:
        client = self._load(client_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes and client.is_active and self._active_name_exists(changes["name"], client.id):
            raise _name_taken()
        for field, value in changes.items():
            setattr(client, field, str(value) if field == "contact_email" else value)
        self._save()
        logger.info("Client updated", extra={"client_id": client.id, "fields": sorted(changes)})
        return ClientOut.model_validate(client)

    def delete_client(self, client_id: int) -> None:
        client = self._load(client_id)
        client.is_active = False
        self.session.commit()
        logger.info("Client deactivated", extra={"client_id": client.id})

    def list_clients(
        self,
        *,
        is_active: bool | None = None,
        search: str | None = None,
        page: int | None = None,
        limit: int | None = None,
        sort: str | None = None,
    ) -> tuple[list[ClientOut], PageMeta]:
        """
        Filtered, sorted client list. With neither page nor limit the whole list comes
        back as a single page (used to fill client pickers).
        """
        query = self.session.query(Client)
        if is_active is not None:
            query = query.filter(Client.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Client.name.ilike(pattern), Client.contact_person.ilike(pattern)))
        query = query.order_by(*parse_sort(sort, CLIENT_SORT_FIELDS, "-created_at"), Client.id)

        if page is None and limit is None:
            clients = query.all()
            meta = PageMeta(page=1, limit=len(clients), total=len(clients), total_pages=1)
        else:
            clients, meta = paginate(query, resolve_page(page, limit))
        return [ClientOut.model_validate(c) for c in clients], meta
