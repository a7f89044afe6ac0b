# === 📦 IMPORTS ===
import os, time, logging
from pathlib import Path
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from aggregator import aggregate, EmptyQueryError
from scrapers import close_client_session

# === ⚙️ CONFIGURATION ===
PORT = int(os.environ.get("PORT", "3000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
STATIC_DIR = Path(
    os.environ.get("STATIC_DIR", Path(__file__).resolve().parent / "public")
).resolve()

# === ℹ️ LOGGING ===
start_time = time.monotonic()


class ElapsedFormatter(logging.Formatter):
    def format(self, record):
        elapsed = time.monotonic() - start_time
        record.elapsed_time = f"{elapsed:.2f}s"
        return super().format(record)


formatter_str = "%(elapsed_time)s [%(levelname)s] %(message)s"

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO), format=formatter_str)

for handler in logging.getLogger().handlers:
    handler.setFormatter(ElapsedFormatter(formatter_str))

for lib in ["aiohttp", "asyncio"]:
    logging.getLogger(lib).setLevel(logging.WARNING)


# === 🚀 FASTAPI ROUTES ===
@asynccontextmanager
async def lifespan(_: FastAPI):
    logging.info(f"Keyword Surprise server running on port {PORT}")
    yield
    await close_client_session()


app = FastAPI(lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"])


@app.get("/api/search")
async def search(q: str = ""):
    global start_time
    start_time = time.monotonic()

    query = q.strip()
    if not query:
        return JSONResponse(
            status_code=400, content={"error": "Missing query parameter q"}
        )

    logging.info(f"=== STARTING SEARCH: {query} ===")
    try:
        payload = await aggregate(query)
    except EmptyQueryError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        logging.exception(f"SEARCH ERROR - {query}")
        return JSONResponse(
            status_code=500, content={"error": "Server error", "details": str(e)}
        )

    return JSONResponse(content=payload)


@app.get("/{full_path:path}")
def static_or_index(full_path: str):
    target = (STATIC_DIR / full_path).resolve()
    if full_path and target.is_file() and target.is_relative_to(STATIC_DIR):
        return FileResponse(target)
    return FileResponse(STATIC_DIR / "index.html")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
