from sqlalchemy.ext.asyncio import AsyncSession


async def paginate(db: AsyncSession, query, count_query, order_by, page: int, page_size: int):
    """
    Run a count query and one page of the main query

    Returns:
        (rows, total)
    """
    total_result = await db.execute(count_query)
    total = total_result.scalar()

    offset = (page - 1) * page_size
    result = await db.execute(query.order_by(order_by).offset(offset).limit(page_size))
    return result.scalars().all(), total
