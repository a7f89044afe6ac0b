# === 📦 IMPORTS ===
import os, re, asyncio, logging, functools
from urllib.parse import urlencode, urljoin, quote
from aiohttp import ClientTimeout, ClientSession
from bs4 import BeautifulSoup, Tag

# === ⚙️ CONFIGURATION ===
HTTP_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT", "10"))
MAX_IMAGE_PAGES = int(os.environ.get("MAX_IMAGE_PAGES", "10"))

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/117 Safari/537.36"
)

DUCK_BASE_URL = "https://duckduckgo.com/"
DUCK_IMAGES_URL = "https://duckduckgo.com/i.js"
DUCK_HTML_URL = "https://duckduckgo.com/html/"
YOUTUBE_RESULTS_URL = "https://www.youtube.com/results"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v="
YOUTUBE_EMBED_URL = "https://www.youtube.com/embed/"

LINK_SELECTOR = ".result__a"

VQD_PATTERNS = [
    re.compile(r"vqd='([^']+)'"),
    re.compile(r'vqd="([^"]+)"'),
    re.compile(r"vqd=([\d-]+)&"),
]
VIDEO_ID_PATTERN = re.compile(r'"videoId"\s*:\s*"([A-Za-z0-9_\-]{11})"')
WATCH_HREF_PATTERN = re.compile(r"/watch\?v=([A-Za-z0-9_\-]{11})")

timeout_obj = ClientTimeout(total=HTTP_TIMEOUT)
client_session: ClientSession | None = None
_session_lock = asyncio.Lock()


class UpstreamError(Exception):
    """An upstream page answered with a non-success status."""


# === 🌐 HTTP SESSION ===
async def get_client_session():
    global client_session
    async with _session_lock:
        if client_session is None or client_session.closed:
            client_session = ClientSession(
                timeout=timeout_obj, headers={"User-Agent": USER_AGENT}
            )
    return client_session


async def close_client_session():
    global client_session
    if client_session and not client_session.closed:
        await client_session.close()
    client_session = None


async def fetch_text(session, url, headers=None):
    async with session.get(url, headers=headers) as resp:
        if resp.status >= 400:
            raise UpstreamError(f"HTTP {resp.status} for {url}")
        return await resp.text(errors="replace")


def build_url(base, **params):
    return f"{base}?{urlencode(params, quote_via=quote)}"


# === 🧯 FAILURE ABSORPTION ===
def absorb_failures(label, fallback=list):
    """Log any exception raised by the wrapped coroutine and return ``fallback()``.

    Cancellation is a ``BaseException`` and still propagates.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logging.error(f"{label} ERROR - {e.__class__.__name__}: {e}")
                return fallback()

        return wrapper

    return decorator


# === 🔑 TOKEN ===
def extract_token(text: str):
    for pattern in VQD_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(1)
    return None


@absorb_failures("TOKEN", fallback=lambda: None)
async def resolve_token(query: str, session):
    text = await fetch_text(session, build_url(DUCK_BASE_URL, q=query))
    token = extract_token(text)
    if token is None:
        logging.info(f"TOKEN - No vqd marker found for: {query}")
    return token


# === 🖼️ IMAGES ===
def extract_images(data, limit: int) -> list[dict]:
    images = []
    for it in data.get("results") or []:
        if len(images) >= limit:
            break
        if not isinstance(it, dict):
            continue
        images.append(
            {
                "type": "image",
                "url": it.get("image") or it.get("url") or None,
                "thumbnail": it.get("thumbnail"),
                "title": it.get("title") or it.get("alt"),
                "source": it.get("url") or it.get("source") or None,
            }
        )
    return images


@absorb_failures("IMAGES")
async def fetch_images(query: str, max_results: int, session) -> list[dict]:
    vqd = await resolve_token(query, session)
    if not vqd:
        return []

    results, pages = [], 0
    next_url = build_url(DUCK_IMAGES_URL, l="en-US", o="json", q=query, vqd=vqd)

    while next_url and len(results) < max_results:
        if pages >= MAX_IMAGE_PAGES:
            logging.warning(f"IMAGES - Page limit {MAX_IMAGE_PAGES} reached: {query}")
            break
        pages += 1

        async with session.get(
            next_url, headers={"Accept": "application/json"}
        ) as resp:
            if not 200 <= resp.status < 300:
                logging.info(f"IMAGES - HTTP {resp.status} on page {pages}, stopping")
                break
            data = await resp.json(content_type=None)

        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            break

        results.extend(extract_images(data, max_results - len(results)))
        next_url = urljoin(DUCK_BASE_URL, data["next"]) if data.get("next") else None

    logging.info(f"IMAGES - {pages} page(s), {len(results)} result(s)")
    return results


# === 🔗 LINKS ===
def extract_links(html: str, limit: int) -> list[dict]:
    soup = BeautifulSoup(html, "lxml")
    links = []
    for a in soup.select(LINK_SELECTOR):
        if len(links) >= limit:
            break
        if not isinstance(a, Tag):
            continue
        href = a.get("href")
        if not href:
            continue
        href = str(href)
        title = a.get_text()
        links.append({"type": "link", "url": href, "title": title or href})
    return links


@absorb_failures("LINKS")
async def fetch_links(query: str, max_results: int, session) -> list[dict]:
    html = await fetch_text(session, build_url(DUCK_HTML_URL, q=query))
    links = extract_links(html, max_results)
    logging.info(f"LINKS - {len(links)} result(s)")
    return links


# === 🎬 VIDEOS ===
def extract_video_ids(text: str, limit: int) -> list[str]:
    for pattern in (VIDEO_ID_PATTERN, WATCH_HREF_PATTERN):
        ids = {}
        for m in pattern.finditer(text):
            if len(ids) >= limit:
                break
            ids.setdefault(m.group(1), None)
        if ids:
            return list(ids)
    return []


def video_record(video_id: str) -> dict:
    return {
        "type": "video",
        "url": YOUTUBE_WATCH_URL + video_id,
        "embed": YOUTUBE_EMBED_URL + video_id,
        "title": None,
    }


@absorb_failures("VIDEOS")
async def fetch_videos(query: str, max_results: int, session) -> list[dict]:
    text = await fetch_text(
        session, build_url(YOUTUBE_RESULTS_URL, search_query=query)
    )
    videos = [video_record(i) for i in extract_video_ids(text, max_results)]
    logging.info(f"VIDEOS - {len(videos)} result(s)")
    return videos
