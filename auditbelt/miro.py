"""
AUDITBELT Miro Integration

Deploys code-overhaul boards to Miro through its REST API (v2):
one frame per entrypoint, one sticky note per signer. Redeploying only
adds the notes a frame is missing. Items uploaded by hand (screenshots)
can be moved into an entrypoint frame with place_item.

Usage:
    with MiroClient(config.miro) as client:
        frame = deploy_entrypoint(client, entrypoint)
        print(client.frame_url(frame.item_id))
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel

from auditbelt.config import MiroSettings
from auditbelt.metadata import EntrypointMetadata

MIRO_API_URL = "https://api.miro.com/v2"
MIRO_BOARD_URL = "https://miro.com/app/board"

FRAME_WIDTH = 3392
FRAME_HEIGHT = 1908
STICKY_NOTE_WIDTH = 374
SIGNER_X = 550
SIGNER_Y_START = 150
SIGNER_Y_STEP = 270
PLACE_X = 300
PLACE_Y = 300


class MiroError(Exception):
    pass


class MiroFrame(BaseModel):
    item_id: str
    title: str
    x_position: float = 0
    y_position: float = 0
    width: float = FRAME_WIDTH
    height: float = FRAME_HEIGHT


class MiroStickyNote(BaseModel):
    item_id: str
    content: str
    color: str
    parent_id: str


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class MiroClient:
    def __init__(self, settings: MiroSettings, client: httpx.Client | None = None):
        if not settings.enabled:
            raise MiroError("Miro is not configured: set miro.board_id and miro.access_token")
        self.settings = settings
        self._client = client or httpx.Client(timeout=30.0)
        self._client.base_url = f"{MIRO_API_URL}/boards/{settings.board_id}/"
        self._client.headers["Authorization"] = f"Bearer {settings.access_token}"

    def __enter__(self) -> "MiroClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def frame_url(self, item_id: str) -> str:
        return f"{MIRO_BOARD_URL}/{self.settings.board_id}/?moveToWidget={item_id}"

    # -- frames --------------------------------------------------------------

    def create_frame(self, title: str, x: float = 0, y: float = 0,
                     width: float = FRAME_WIDTH, height: float = FRAME_HEIGHT) -> MiroFrame:
        data = self._request("POST", "frames", json={
            "data": {"format": "custom", "title": title, "type": "freeform"},
            "position": {"origin": "center", "x": x, "y": y},
            "geometry": {"width": width, "height": height},
        })
        frame = self._frame_from_response(data)
        logger.info(f"[MIRO] Created frame {title!r} ({frame.item_id})")
        return frame

    def list_frames(self) -> list[MiroFrame]:
        data = self._request("GET", "items", params={"type": "frame", "limit": 50})
        return [self._frame_from_response(item) for item in data.get("data", [])]

    def list_frame_items(self, frame_id: str, item_type: str | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"parent_item_id": frame_id, "limit": 50}
        if item_type:
            params["type"] = item_type
        return self._request("GET", "items", params=params).get("data", [])

    def get_item(self, item_id: str) -> dict[str, Any]:
        return self._request("GET", f"items/{item_id}")

    def update_item_position(self, item_id: str, x: float, y: float, parent_id: str | None = None) -> None:
        body: dict[str, Any] = {"position": {"origin": "center", "x": x, "y": y}}
        if parent_id:
            body["parent"] = {"id": parent_id}
        self._request("PATCH", f"items/{item_id}", json=body)

    # -- sticky notes --------------------------------------------------------

    def create_sticky_note(self, content: str, color: str, parent_id: str,
                           x: float, y: float, width: float = STICKY_NOTE_WIDTH) -> MiroStickyNote:
        data = self._request("POST", "sticky_notes", json={
            "data": {"content": content, "shape": "rectangle"},
            "style": {"fillColor": color},
            "position": {"origin": "center", "x": x, "y": y},
            "geometry": {"width": width},
            "parent": {"id": parent_id},
        })
        return MiroStickyNote(
            item_id=self._item_id(data), content=content, color=color, parent_id=parent_id,
        )

    # -- internal ------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise MiroError(f"Miro request {method} {path} failed: {e}") from e
        if response.is_error:
            raise MiroError(f"Miro {method} {path} returned {response.status_code}: {response.text}")
        logger.debug(f"[MIRO] {method} {path} → {response.status_code}")
        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _item_id(data: dict[str, Any]) -> str:
        item_id = data.get("id")
        if not item_id:
            raise MiroError(f"Miro response without id: {data}")
        return str(item_id)

    def _frame_from_response(self, data: dict[str, Any]) -> MiroFrame:
        position = data.get("position", {})
        geometry = data.get("geometry", {})
        return MiroFrame(
            item_id=self._item_id(data),
            title=data.get("data", {}).get("title", ""),
            x_position=position.get("x", 0),
            y_position=position.get("y", 0),
            width=geometry.get("width", FRAME_WIDTH),
            height=geometry.get("height", FRAME_HEIGHT),
        )


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------

SIGNER_COLORS = {
    "validated": "red",
    "not_validated": "dark_blue",
    "permissionless": "gray",
}


def item_id_from_url(url_or_id: str) -> str:
    """`https://miro.com/app/board/<board>/?moveToWidget=<id>` → `<id>`. Bare ids pass through."""
    if "moveToWidget=" not in url_or_id:
        return url_or_id.strip()
    return url_or_id.split("moveToWidget=", 1)[1].split("&", 1)[0]


def find_frame(client: MiroClient, title: str) -> MiroFrame | None:
    return next((f for f in client.list_frames() if f.title == title), None)


def signer_note(signer: str, validated_signers: set[str]) -> tuple[str, str]:
    """Content and color of the sticky note for one signer ("" for permissionless)."""
    if not signer:
        return "Permissionless", SIGNER_COLORS["permissionless"]
    if signer in validated_signers:
        return f"Validated signer:\n {signer}", SIGNER_COLORS["validated"]
    return f"Not validated signer:\n {signer}", SIGNER_COLORS["not_validated"]


def deploy_entrypoint(
    client: MiroClient,
    entrypoint: EntrypointMetadata,
    validated_signers: set[str] | None = None,
) -> MiroFrame:
    """Create (or reuse) the entrypoint's frame and add the signer notes it lacks."""
    validated_signers = validated_signers or set()
    frame = find_frame(client, entrypoint.name)
    existing: set[str] = set()
    if frame is None:
        frame = client.create_frame(entrypoint.name)
    else:
        existing = {
            item.get("data", {}).get("content", "")
            for item in client.list_frame_items(frame.item_id, item_type="sticky_note")
        }

    created = 0
    for position, signer in enumerate(entrypoint.signers or [""]):
        content, color = signer_note(signer, validated_signers)
        if content in existing:
            logger.debug(f"[MIRO] {entrypoint.name}: note for {signer or 'permissionless'} already on the board")
            continue
        client.create_sticky_note(
            content, color, frame.item_id,
            x=SIGNER_X, y=SIGNER_Y_START + position * SIGNER_Y_STEP,
        )
        created += 1

    logger.info(f"[MIRO] Deployed {entrypoint.name}: {created} new signer note(s)")
    return frame


def place_item(client: MiroClient, item: str, frame_title: str,
               x: float = PLACE_X, y: float = PLACE_Y) -> str:
    """Move an existing board item (e.g. an uploaded screenshot) into a frame."""
    frame = find_frame(client, frame_title)
    if frame is None:
        raise MiroError(f"No frame titled {frame_title!r} on the board; run `auditbelt miro deploy` first")
    item_id = item_id_from_url(item)
    item_type = client.get_item(item_id).get("type", "item")
    client.update_item_position(item_id, x, y, parent_id=frame.item_id)
    logger.info(f"[MIRO] Moved {item_type} {item_id} into {frame_title!r} at ({x}, {y})")
    return item_id
