import logging

from fastapi import APIRouter

from comicgen.api.deps import RepositoryDep
from comicgen.api.routes.schemas import DbInitResponse
from comicgen.services.comic_repository import ComicRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["database"])


@router.post("/db/init", response_model=DbInitResponse)
def init_database(repo: ComicRepository = RepositoryDep):
    """Report whether tables and the storage bucket exist. Never creates anything."""
    status = repo.check_setup()

    if status.missing_tables:
        logger.warning("db_init_tables_missing tables=%s", status.missing_tables)
        return DbInitResponse(
            success=False,
            message="Required tables are missing; run the database migrations first",
            missing_tables=status.missing_tables,
            bucket=status.bucket,
            bucket_exists=status.bucket_exists,
            instructions={
                "step1": "Point DATABASE_URL at the target database",
                "step2": "Run `alembic upgrade head` from the project root",
                "step3": "Call POST /db/init again",
            },
        )

    if status.bucket_exists is False:
        logger.warning("db_init_bucket_missing bucket=%s", status.bucket)
        return DbInitResponse(
            success=False,
            message=f"Storage bucket '{status.bucket}' was not found",
            bucket=status.bucket,
            bucket_exists=False,
            instructions={
                "step1": "Open the Supabase dashboard and go to Storage",
                "step2": f"Create a public bucket named '{status.bucket}'",
                "step3": "Call POST /db/init again",
            },
        )

    message = "Database is ready"
    if status.bucket_exists is None:
        message = "Database is ready; image storage is not configured"
    logger.info("db_init_ok bucket=%s", status.bucket)
    return DbInitResponse(
        success=True,
        message=message,
        bucket=status.bucket,
        bucket_exists=status.bucket_exists,
    )
