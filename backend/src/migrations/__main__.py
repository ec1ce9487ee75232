"""
Migration komutları
Kullanım: python -m migrations up
         python -m migrations down [adım]
         python -m migrations status
"""
import asyncio
import logging
import sys

from db.mongo import close_database_connection, get_database
from migrations.base import MigrationError
from migrations.runner import MigrationRunner

logger = logging.getLogger("migrations")


async def _run(command: str, args: list) -> None:
    db = await get_database()
    runner = MigrationRunner(db)
    try:
        if command == "up":
            await runner.apply_pending()
        elif command == "down":
            steps = int(args[0]) if args else 1
            rolled_back = await runner.rollback(steps)
            logger.info("↩️ Geri alınan sürümler: %s", rolled_back or "yok")
        elif command == "status":
            for row in await runner.status():
                mark = "✅" if row["applied"] else "⏳"
                print(f"{mark} {row['version']:03d} {row['name']}  {row['applied_at'] or ''}")
    finally:
        await close_database_connection()


def main(argv: list) -> int:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if len(argv) < 1 or argv[0] not in ("up", "down", "status"):
        print("Kullanılabilir komutlar:")
        print("  python -m migrations up          - Bekleyen migration'ları uygula")
        print("  python -m migrations down [n]    - Son n migration'ı geri al (varsayılan 1)")
        print("  python -m migrations status      - Migration durumu")
        return 1

    try:
        asyncio.run(_run(argv[0], argv[1:]))
    except (MigrationError, ValueError) as e:
        logger.error("❌ Migration komutu başarısız: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
