from __future__ import annotations
import os
import re
from dataclasses import dataclass

from card_table.config import tweak


def sanitize_deck_name(name: str) -> str:
    """Deck folder names only keep letters, digits, '-' and '_'."""
    return re.sub(r"[^a-zA-Z0-9\-_]", "_", name.strip())


def is_image_file(filename: str) -> bool:
    return os.path.splitext(filename)[1].lower() in tweak["image_extensions"]


def is_card_back(filename: str) -> bool:
    return filename.startswith(tweak["card_back_prefix"])


@dataclass
class Deck_Library:
    """Deck folders on disk: <root>/<deck_id>/ holds the card images and an optional card back."""
    root: str = tweak["uploads_dir"]
    url_prefix: str = tweak["uploads_url"]

    def deck_folder(self, deck_id: str) -> str | None:
        if not deck_id or sanitize_deck_name(deck_id) != deck_id:
            return None
        return os.path.join(self.root, deck_id)

    def image_url(self, deck_id: str, filename: str) -> str:
        return f"{self.url_prefix}/{deck_id}/{filename}"

    def card_images(self, deck_id: str) -> list[str] | None:
        """Image references of every card in a stored deck, or None if there is no such deck."""
        folder = self.deck_folder(deck_id)
        if folder is None or not os.path.isdir(folder):
            return None
        files = sorted(os.listdir(folder))
        return [
            self.image_url(deck_id, f)
            for f in files
            if is_image_file(f) and not is_card_back(f)
        ]

    def card_back(self, deck_id: str | None) -> str:
        """Back image of a deck: card-back.png, then .jpg, then .webp, then the global default."""
        folder = self.deck_folder(deck_id) if deck_id else None
        if folder is not None:
            prefix = tweak["card_back_prefix"]
            for ext in tweak["card_back_extensions"]:
                filename = f"{prefix}.{ext}"
                if os.path.isfile(os.path.join(folder, filename)):
                    return self.image_url(deck_id, filename)
        return tweak["default_card_back"]

    def list_decks(self) -> list[dict]:
        if not os.path.isdir(self.root):
            return []
        decks = []
        for deck_id in sorted(os.listdir(self.root)):
            folder = os.path.join(self.root, deck_id)
            if not os.path.isdir(folder):
                continue
            files = os.listdir(folder)
            back = next((f for f in sorted(files) if is_card_back(f)), None)
            images = [f for f in files if is_image_file(f) and not is_card_back(f)]
            decks.append({
                "id": deck_id,
                "name": deck_id,
                "card_back": self.image_url(deck_id, back) if back else tweak["default_card_back"],
                "card_count": len(images),
            })
        return decks
