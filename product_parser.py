import json
import logging
import re

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

CURRENCY = '₽'
OZON_TITLE_SUFFIX = ' – Ozon'
WB_SKU_PATTERNS = (re.compile(r'catalog/(\d+)'), re.compile(r'product/(\d+)'))
WB_IMAGE_URL = 'https://basket-{bucket}.wbbasket.ru/vol{vol}/part{part}/{nm}/images/big/1.jpg'


class ExtractionError(Exception):
    """Product metadata could not be extracted."""


class IdentifierNotFound(ExtractionError):
    pass


class ProductNotFound(ExtractionError):
    pass


def format_price(value):
    """Render a price like ``1500 ₽``; whole floats lose their ``.0``."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value} {CURRENCY}"


def product_metadata(title=None, image=None, price=None):
    return {'title': title, 'image': image, 'price': price}


class PageFetcher:
    """Single GET with the bot's User-Agent. Transport errors propagate."""

    def __init__(self, user_agent, session=None):
        self.session = session or requests.Session()
        self.headers = {'User-Agent': user_agent}

    def fetch(self, url):
        response = self.session.get(url, headers=self.headers)
        response.raise_for_status()
        return response.text

    def fetch_json(self, url, params=None):
        response = self.session.get(url, params=params, headers=self.headers)
        response.raise_for_status()
        return response.json()


class Extractor:
    name = 'base'

    def extract(self, url):
        raise NotImplementedError


class WildberriesExtractor(Extractor):
    """Reads the vendor card API instead of scraping the page."""

    name = 'wildberries'

    def __init__(self, fetcher, api_url):
        self.fetcher = fetcher
        self.api_url = api_url

    @staticmethod
    def find_sku(url):
        for pattern in WB_SKU_PATTERNS:
            match = pattern.search(url)
            if match:
                return match.group(1)
        raise IdentifierNotFound(f"No product id in {url}")

    @staticmethod
    def image_url(nm_id):
        return WB_IMAGE_URL.format(
            bucket=str(nm_id)[0],
            vol=nm_id // 100000,
            part=nm_id // 1000,
            nm=nm_id,
        )

    def extract(self, url):
        sku = self.find_sku(url)
        payload = self.fetcher.fetch_json(self.api_url, params={'nm': sku})
        data = payload.get('data') if isinstance(payload, dict) else None
        products = (data or {}).get('products') or []
        if not products:
            raise ProductNotFound(f"Product {sku} not found")

        product = products[0]
        nm_id = int(product.get('nmId') or sku)
        return product_metadata(
            title=product.get('name'),
            image=self.image_url(nm_id),
            price=format_price(product['salePriceU'] / 100) if product.get('salePriceU') is not None else None,
        )


def iter_ld_json(soup):
    """Yield every structured-data block that parses; broken ones are skipped."""
    for script in soup.find_all('script', {'type': 'application/ld+json'}):
        try:
            yield json.loads(script.string or script.get_text())
        except ValueError:
            logger.debug("Skipping invalid JSON-LD script.")
            continue


def offer_price(data):
    if not isinstance(data, dict):
        return None
    offers = data.get('offers')
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    if not isinstance(offers, dict):
        return None
    return offers.get('price') or None


def first_found(candidates):
    return next((c for c in candidates if c is not None), None)


class HtmlMetadataExtractor(Extractor):
    """Open Graph tags for title/image, JSON-LD offers for the price."""

    name = 'html'

    def __init__(self, fetcher, title_suffix=None, name=None):
        self.fetcher = fetcher
        self.title_suffix = title_suffix
        if name:
            self.name = name

    def extract(self, url):
        return self.parse(self.fetcher.fetch(url))

    def parse(self, html):
        soup = BeautifulSoup(html, 'html.parser')

        title = self._meta(soup, 'og:title')
        if not title:
            page_title = soup.find('title')
            title = page_title.get_text() if page_title else ''
            if self.title_suffix:
                title = title.replace(self.title_suffix, '', 1)

        price = first_found(offer_price(block) for block in iter_ld_json(soup))
        return product_metadata(
            title=title or None,
            image=self._meta(soup, 'og:image'),
            price=format_price(price) if price is not None else None,
        )

    @staticmethod
    def _meta(soup, prop):
        tag = soup.find('meta', attrs={'property': prop})
        if tag and tag.get('content'):
            return tag['content']
        return None


class SourceDispatcher:
    """
    Picks an extractor by plain substring match on the URL.

    No host parsing is done, so an unrelated URL that merely contains one of
    the patterns (say in its query string) is routed to that source.
    """

    def __init__(self, routes, fallback):
        self.routes = routes
        self.fallback = fallback

    @classmethod
    def default(cls, fetcher, wb_api_url):
        routes = [
            (('wildberries.ru',), WildberriesExtractor(fetcher, wb_api_url)),
            (('ozon.ru',), HtmlMetadataExtractor(fetcher, title_suffix=OZON_TITLE_SUFFIX, name='ozon')),
            (('market.yandex.ru', 'yandex.ru'), HtmlMetadataExtractor(fetcher, name='yandex')),
        ]
        return cls(routes, HtmlMetadataExtractor(fetcher, name='generic'))

    def select(self, url):
        for patterns, extractor in self.routes:
            if any(p in url for p in patterns):
                return extractor
        return self.fallback

    def parse(self, url):
        extractor = self.select(url)
        logger.info(f"Parsing {url} with {extractor.name} extractor")
        return extractor.extract(url)
