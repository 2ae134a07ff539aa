# Overview: Client roster CRUD. Removing a client goes through settlement_service.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Client
from ..validation import clean_name
from .concurrency import run_atomic


def list_clients(search: str | None = None) -> list[Client]:
    """Roster ordered by name; `search` is a case-insensitive substring."""
    query = db.session.query(Client)
    if search:
        needle = search.strip().lower()
        if needle:
            query = query.filter(db.func.lower(Client.display_name).contains(needle, autoescape=True))
    return query.order_by(Client.display_name.asc(), Client.created_at.asc()).all()


def get_client(client_id: str) -> Client:
    client = db.session.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client not found", details={"client_id": client_id})
    return client


def create_client(display_name: str) -> Client:
    name = clean_name(display_name, field="display_name")

    def _op():
        client = Client(display_name=name)
        db.session.add(client)
        db.session.flush()
        return client

    client = run_atomic(_op)
    current_app.logger.info("Client %s opened tab", client.id)
    return client


def rename_client(client_id: str, display_name: str) -> Client:
    """Rename a client. Past transactions keep the name they were settled under."""
    name = clean_name(display_name, field="display_name")

    def _op():
        client = get_client(client_id)
        client.display_name = name
        return client

    return run_atomic(_op)
