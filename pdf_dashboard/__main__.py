import uvicorn

from pdf_dashboard.config import settings


def main() -> None:
    uvicorn.run(
        "pdf_dashboard.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
