"""API — JSON items service.

CRUD for a simple "items" resource. Demonstrates switchyard for API-only
apps: dict/list returns become JSON, a trailing path parameter coerced
to ``int``, dataclass binding from the body and the query string, and
the three middleware tiers.

Run:
    cd examples/api && python app.py
"""

import threading
import time
from dataclasses import dataclass

from switchyard import App, NotFound, Request, Response
from switchyard.binding import UInt8, body, path, query
from switchyard.middleware import Next

app = App()
app.set_no_route_response("application/json", '{"error": "not found"}')


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


async def timing(request: Request, next: Next) -> Response:
    start = time.monotonic()
    response = await next(request)
    return response.with_header("X-Time", f"{time.monotonic() - start:.4f}")


async def require_token(request: Request, next: Next) -> Response:
    if request.headers.get("authorization") != "Bearer example":
        return Response(b'{"error": "unauthorized"}', status=401)
    return await next(request)


async def api_version(request: Request, next: Next) -> Response:
    response = await next(request)
    return response.with_header("X-API-Version", "1")


app.add_middleware(timing)
app.add_after_middleware(api_version)


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Item:
    id: int
    title: str
    done: bool


_items: dict[int, Item] = {}
_next_id = 1
_lock = threading.Lock()


def _get_next_id() -> int:
    global _next_id
    with _lock:
        n = _next_id
        _next_id += 1
        return n


def _to_dict(item: Item) -> dict:
    return {"id": item.id, "title": item.title, "done": item.done}


def _lookup(item_id: int) -> Item:
    with _lock:
        item = _items.get(item_id)
    if item is None:
        raise NotFound(f"item {item_id} not found")
    return item


# ---------------------------------------------------------------------------
# Bound inputs
# ---------------------------------------------------------------------------


@dataclass
class Page:
    limit: UInt8 = query("limit", default=50)
    offset: int = query("offset", default=0)


@dataclass
class NewItem:
    title: str = body("title", default="")


@dataclass
class ItemUpdate:
    id: int = path("id", default=0)
    title: str | None = body("title", default=None)
    done: bool | None = body("done", default=None)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


async def list_items(page: Page) -> dict:
    """List items with optional limit and offset."""
    limit = min(max(page.limit, 1), 100)
    offset = max(page.offset, 0)

    with _lock:
        all_items = sorted(_items.values(), key=lambda x: x.id)

    return {
        "data": [_to_dict(i) for i in all_items[offset : offset + limit]],
        "meta": {"limit": limit, "offset": offset, "total": len(all_items)},
    }


def get_item(id: int) -> dict:
    """Get a single item by ID."""
    return {"data": _to_dict(_lookup(id))}


async def create_item(new: NewItem) -> tuple[dict, int]:
    """Create a new item."""
    title = new.title.strip()
    if not title:
        return {"error": "title is required"}, 400

    item = Item(id=_get_next_id(), title=title, done=False)
    with _lock:
        _items[item.id] = item
    return {"data": _to_dict(item)}, 201


async def update_item(update: ItemUpdate) -> dict:
    """Update an existing item; absent fields keep their value."""
    item = _lookup(update.id)
    updated = Item(
        id=item.id,
        title=update.title.strip() if update.title is not None else item.title,
        done=update.done if update.done is not None else item.done,
    )
    with _lock:
        _items[item.id] = updated
    return {"data": _to_dict(updated)}


def delete_item(id: int) -> None:
    """Delete an item."""
    with _lock:
        item = _items.pop(id, None)
    if item is None:
        raise NotFound(f"item {id} not found")


app.get("/api/items", list_items)
app.get("/api/items/:id", get_item)
app.post("/api/items", create_item)
app.add_route("PUT", "/api/items/:id", update_item)
app.add_route("DELETE", "/api/items/:id", delete_item, require_token)


if __name__ == "__main__":
    app.run()
