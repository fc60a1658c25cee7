"""Seed the AI model catalog with the image generation models we serve.

Idempotent: models are matched on model_key and existing rows are left alone.

Usage:
    docker compose exec backend python -m scripts.seed_models
"""

from app.models.base import SyncSessionLocal
from app.models.ai_model import AIModel

CATALOG = [
    {
        "model_key": "runware:101@1",
        "name": "FLUX Dev",
        "category": "General",
        "provider": "Black Forest Labs",
        "rating": 90,
        "downloads": 52000,
        "likes": 3100,
        "featured": True,
        "tags": ["flux", "versatile", "high-detail"],
        "thumbnail": "https://mim.runware.ai/r/67c1e3076ad38-768x1024.jpg",
    },
    {
        "model_key": "runware:100@1",
        "name": "FLUX Schnell",
        "category": "General",
        "provider": "Black Forest Labs",
        "rating": 84,
        "downloads": 38000,
        "likes": 2200,
        "featured": False,
        "tags": ["flux", "fast"],
        "thumbnail": "https://mim.runware.ai/r/67c1e2d8a5e3c-768x1024.jpg",
    },
    {
        "model_key": "rundiffusion:130@100",
        "name": "Juggernaut Pro Flux by RunDiffusion",
        "category": "Photorealistic",
        "provider": "RunDiffusion",
        "rating": 92,
        "downloads": 45230,
        "likes": 2847,
        "discussions": 189,
        "images_generated": 78450,
        "featured": True,
        "tags": ["rundiffusion", "pro", "photorealism", "juggernaut", "flux"],
        "thumbnail": "https://mim.runware.ai/r/67bf6a306dc46-1024x1365.jpg",
        "description": "Professional-grade photorealistic model for portraits, landscapes and detailed lighting.",
    },
    {
        "model_key": "runware:97@2",
        "name": "HiDream-I1-Dev",
        "category": "Artistic",
        "provider": "HiDream",
        "rating": 81,
        "downloads": 12800,
        "likes": 940,
        "featured": False,
        "tags": ["hidream", "artistic"],
        "thumbnail": "https://mim.runware.ai/r/682f388d22a27-880x1168.jpg",
    },
    {
        "model_key": "runware:97@3",
        "name": "HiDream-I1-Full",
        "category": "Artistic",
        "provider": "HiDream",
        "rating": 86,
        "downloads": 9700,
        "likes": 810,
        "featured": True,
        "tags": ["hidream", "artistic", "full"],
        "thumbnail": "https://mim.runware.ai/r/682f3861e07f8-880x1168.jpg",
    },
    {
        "model_key": "civitai:112902@351306",
        "name": "DreamShaper XL",
        "category": "Fantasy",
        "provider": "Lykon",
        "rating": 83,
        "downloads": 27400,
        "likes": 1900,
        "featured": False,
        "tags": ["sdxl", "fantasy", "illustration"],
    },
    {
        "model_key": "civitai:372465@914390",
        "name": "Pony Realism",
        "category": "Photorealistic",
        "provider": "Community",
        "rating": 74,
        "downloads": 21000,
        "likes": 1300,
        "featured": False,
        "tags": ["pony", "realism"],
        "thumbnail": "https://mim.runware.ai/r/67c36272cfcc0-1664x2432.jpg",
    },
    {
        "model_key": "civitai:141592@992642",
        "name": "PixelWave",
        "category": "Anime",
        "provider": "Community",
        "rating": 68,
        "downloads": 6400,
        "likes": 420,
        "featured": False,
        "tags": ["anime", "stylized"],
    },
]


def seed():
    db = SyncSessionLocal()
    try:
        created = 0
        for entry in CATALOG:
            existing = db.query(AIModel).filter(AIModel.model_key == entry["model_key"]).first()
            if existing:
                print(f"  Skipped: {entry['name']} already in catalog")
                continue

            db.add(AIModel(
                description=entry.get("description", ""),
                **{k: v for k, v in entry.items() if k != "description"},
            ))
            created += 1
            print(f"  Added: {entry['name']} ({entry['category']} / {entry['provider']})")

        db.commit()
        print(f"\nDone: {created} models created")

    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
