# === 📦 IMPORTS ===
import asyncio, logging
from scrapers import get_client_session, fetch_images, fetch_links, fetch_videos

# === ⚙️ CONFIGURATION ===
MAX_IMAGES = 40
MAX_LINKS = 20
MAX_VIDEOS = 12
MAX_RESULTS = 60
VIDEO_STRIDE = 3

NO_RESULTS_NOTE = (
    "No results found from scrapers for this keyword. Try a different keyword."
)


class EmptyQueryError(ValueError):
    pass


# === 🔀 MERGE ===
def identity_key(record: dict) -> str:
    return (
        record.get("url")
        or record.get("embed")
        or (record.get("source") or "") + (record.get("title") or "")
    )


def interleave(images: list[dict], videos: list[dict], stride=VIDEO_STRIDE):
    """Insert the i-th video at ``(i + 1) * stride`` of the growing list.

    Positions are computed against the list as already modified by earlier
    insertions and clamped to its length.
    """
    merged = list(images)
    for i, video in enumerate(videos):
        merged.insert(min((i + 1) * stride, len(merged)), video)
    return merged


def merge_results(images, links, videos):
    return interleave(images, videos) + list(links)


def deduplicate(records: list[dict]) -> list[dict]:
    seen, deduped = set(), []
    for record in records:
        key = identity_key(record)
        if not key or key in seen:
            continue
        seen.add(key)
        deduped.append(record)
    return deduped


# === 🔍 SEARCH PIPELINE ===
async def aggregate(query: str, session=None) -> dict:
    query = (query or "").strip()
    if not query:
        raise EmptyQueryError("Missing query parameter q")

    if session is None:
        session = await get_client_session()

    images, links, videos = await asyncio.gather(
        fetch_images(query, MAX_IMAGES, session),
        fetch_links(query, MAX_LINKS, session),
        fetch_videos(query, MAX_VIDEOS, session),
    )
    logging.info(
        f"FETCHED - {len(images)} image(s), {len(links)} link(s), {len(videos)} video(s)"
    )

    deduped = deduplicate(merge_results(images, links, videos))
    if not deduped:
        logging.info(f"RESULTS - Nothing found for: {query}")
        return {"results": [], "note": NO_RESULTS_NOTE}

    results = deduped[:MAX_RESULTS]
    logging.info(f"RESULTS - {len(deduped)} unique, returning {len(results)}")
    return {"results": results}
