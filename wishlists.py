import logging
from datetime import datetime, timezone

from supabase_client import IS_NULL, StoreError, eq

logger = logging.getLogger(__name__)

WISHLISTS = 'wishlists'
ITEMS = 'wishlist_items'
ITEM_TEXT_FIELDS = ('title', 'image', 'note', 'price')


def utc_timestamp():
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class WishlistService:
    """Wishlist and item operations on top of the data store."""

    def __init__(self, store):
        self.store = store

    def find_wishlist(self, owner_id):
        rows = self.store.select(WISHLISTS, {'owner_id': eq(owner_id)})
        return rows[0] if rows else None

    def get_or_create_wishlist(self, owner_id):
        wishlist = self.find_wishlist(owner_id)
        if wishlist is None:
            logger.info(f"Creating wishlist for owner {owner_id}")
            created = self.store.insert(WISHLISTS, {'owner_id': owner_id})
            if not created:
                raise StoreError(f"Creating wishlist for owner {owner_id} returned no row")
            wishlist = created[0]
        return wishlist

    def list_items(self, wishlist_id):
        return self.store.select(ITEMS, {'wishlist_id': eq(wishlist_id), 'select': '*'})

    def add_item(self, wishlist_id, url, **fields):
        row = {'wishlist_id': wishlist_id, 'url': url}
        for name in ITEM_TEXT_FIELDS:
            row[name] = fields.get(name) or ''
        return self.store.insert(ITEMS, row)

    def reserve_item(self, item_id, user):
        """
        Claim an item for ``user``. Returns False if it is already reserved or
        does not exist.

        The PATCH repeats the ``reserved_by=is.null`` filter, so when two
        users race only one update matches a row.
        """
        free = {'id': eq(item_id), 'reserved_by': IS_NULL}
        if not self.store.select(ITEMS, free):
            return False

        updated = self.store.update(ITEMS, {
            'reserved_by': user.id,
            'reserved_name': user.display_name,
            'reserved_at': utc_timestamp(),
        }, free)
        if not updated:
            logger.info(f"Item {item_id} was reserved concurrently")
            return False
        return True
