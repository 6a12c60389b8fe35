tweak = {
    # Table geometry
    "merge_threshold": 20,      # Cards dropped closer than this to a deck join it
    "draw_offset_x": 50,        # Drawn cards land next to their deck
    "draw_offset_y": 50,
    "pile_x": 200,              # Default position of a new pile
    "pile_y": 200,
    "library_deck_x": 100,      # Re-added decks land at base + randint(0, spread - 1)
    "library_deck_y": 100,
    "library_deck_spread": 200,
    "rotation_step": 90,

    # Deck library
    "uploads_dir": "uploads",
    "uploads_url": "/uploads",
    "card_back_prefix": "card-back",
    "card_back_extensions": ["png", "jpg", "webp"],  # Probed in this order
    "default_card_back": "/assets/card-back.png",
    "image_extensions": [".png", ".jpg", ".jpeg", ".webp"],

    # Insert mode used when a move event does not carry one
    "default_deck_add_mode": "bottom",

    # Network
    "host": "0.0.0.0",
    "port": 3000,
    "max_pending_messages": 1024,  # Outgoing frames queued per client before it is dropped
    "stun_host": "stun.l.google.com",
    "stun_port": 19302,
}
