"""
Manual script to run the transaction maintenance sweep immediately.
Run this from the project root: python run_maintenance.py
"""
import asyncio
from labtrack.core.database import session_context
from labtrack.src.services.maintenance import run_maintenance_sweep


async def main():
    async with session_context() as session:
        result = await run_maintenance_sweep(session, trigger="cli")
    print(result.model_dump_json(indent=2))


if __name__ == "__main__":
    print("Running transaction maintenance manually...")
    asyncio.run(main())
    print("Done!")
