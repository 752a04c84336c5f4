import asyncio

from dotenv import load_dotenv

from tracktv.core.auth import AuthContext
from tracktv.core.config import get_settings
from tracktv.services.api_client import TrackerClient
from tracktv.services.episodes import filter_episodes, is_released
from tracktv.services.synchronizer import ShowSynchronizer

load_dotenv()


async def main():
    settings = get_settings()
    auth = AuthContext.from_settings(settings)
    if not auth.is_authenticated:
        print("Set API_TOKEN to sync your shows.")
        return

    client = TrackerClient(auth, settings)
    try:
        sync = ShowSynchronizer(client, auth)
        if not await sync.load_all():
            print(f"Sync failed: {sync.error}")
            return

        print(f"{len(sync.shows)} shows, {len(sync.episodes)} episodes")
        backlog = filter_episodes(sync.episodes, sync.shows, unwatched_only=True)
        for episode in backlog:
            if is_released(episode):
                print(
                    f"  {episode.show_name} S{episode.season or 0:02}"
                    f"E{episode.number or 0:02} {episode.name}"
                )
    finally:
        await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
