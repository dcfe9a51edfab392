from flask import Flask, request, jsonify
from flask_cors import CORS
import logging

from initdata import SessionVerifier
from product_parser import PageFetcher, SourceDispatcher
from settings import Settings
from supabase_client import StoreError, SupabaseClient
from wishlists import WishlistService

logger = logging.getLogger(__name__)


def unauthorized():
    return jsonify({'success': False, 'error': 'Unauthorized'}), 401


def failure(message, status=200):
    return jsonify({'success': False, 'error': message}), status


def create_app(settings=None, store=None, parser=None):
    settings = settings or Settings.from_env()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    missing = settings.missing()
    if missing:
        logger.warning(f"Environment variables not set: {', '.join(missing)}")

    app = Flask(__name__)
    CORS(app, resources={r"/*": {"origins": "*"}})

    verifier = SessionVerifier(settings.bot_token)
    wishlists = WishlistService(store or SupabaseClient(settings.supabase_url, settings.supabase_key))
    if parser is None:
        parser = SourceDispatcher.default(PageFetcher(settings.user_agent), settings.wb_api_url)

    def payload():
        return request.get_json(silent=True) or {}

    @app.errorhandler(StoreError)
    def store_failed(e):
        logger.error(f"Store failure on {request.path}: {e}")
        return failure('Storage unavailable', 502)

    @app.route('/api/items', methods=['POST'])
    def list_items():
        data = payload()
        user = verifier.verify(data.get('initData'))
        if not user:
            return unauthorized()

        wishlist = wishlists.get_or_create_wishlist(user.id)
        items = wishlists.list_items(wishlist['id'])
        return jsonify({
            'success': True,
            'owner_id': user.id,
            'owner_name': user.display_name,
            'items': items,
        })

    @app.route('/api/items/add', methods=['POST'])
    def add_item():
        data = payload()
        user = verifier.verify(data.get('initData'))
        if not user:
            return unauthorized()

        url = data.get('url')
        if not url:
            return failure('URL is required')

        wishlist = wishlists.find_wishlist(user.id)
        if wishlist is None:
            return failure('Open your wishlist first', 400)

        wishlists.add_item(
            wishlist['id'], url,
            title=data.get('title'),
            image=data.get('image'),
            note=data.get('note'),
            price=data.get('price'),
        )
        return jsonify({'success': True})

    @app.route('/api/parse', methods=['POST'])
    def parse_link():
        data = payload()
        user = verifier.verify(data.get('initData'))
        if not user:
            return unauthorized()

        url = data.get('url')
        if not url:
            return failure('URL is required')

        try:
            result = parser.parse(url)
        except Exception as e:
            logger.error(f"Failed to parse {url}: {e}")
            return failure('Could not process the link')

        return jsonify({'success': True, **result, 'url': url})

    @app.route('/api/reserve', methods=['POST'])
    def reserve():
        data = payload()
        user = verifier.verify(data.get('initData'))
        if not user:
            return unauthorized()

        item_id = data.get('item_id')
        if not item_id:
            return failure('item_id is required')

        if not wishlists.reserve_item(item_id, user):
            return failure('Item is already reserved or does not exist')
        logger.info(f"Item {item_id} reserved by {user.id}")
        return jsonify({'success': True})

    @app.route('/health', methods=['GET'])
    def health_check():
        return jsonify({'status': 'healthy', 'message': 'API is running'})

    app.config['SETTINGS'] = settings
    return app


if __name__ == '__main__':
    app = create_app()
    port = app.config['SETTINGS'].port
    logger.info(f"Server listening on port {port}")
    app.run(host='0.0.0.0', port=port)
