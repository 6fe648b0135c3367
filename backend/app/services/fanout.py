import asyncio


async def gather_strict(*aws):
    """Run awaitables concurrently, let every one finish, then raise the first failure."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results
