import asyncio
from datetime import date
from wiki_cache import FeaturedArticlesCache, MemoryStore
from wiki_client import WikiClient
from wiki_featured import FeaturedArticlesService
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)

async def main():
    client = WikiClient()
    service = FeaturedArticlesService(client, FeaturedArticlesCache(MemoryStore()))
    try:
        print("Fetching featured articles for today...")
        result = await service.fetch(date.today(), "en")
        print(f"Status: {result.status}")
        if result.status == "success":
            for article in result.data[:10]:
                print(f"{article.rank}: {article.title} ({article.views_formatted} views)")
        elif result.message:
            print(result.message)

        print("\nSearching for 'python'...")
        search = await client.search("python", "en")
        print(f"Status: {search.status}, {len(search.data)} results")
        for item in search.data:
            print(f"- {item.title}: {item.link}")
    finally:
        await client.close()

if __name__ == "__main__":
    asyncio.run(main())
