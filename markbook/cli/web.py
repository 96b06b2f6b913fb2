import os

import uvicorn

import markbook.lib.cli as click
from markbook.core import BootConfiguration, di
from markbook.core.config import LoggingSettings, WebSettings


@click.group()
def web(): ...


@web.command(name="serve")
@click.option("-w", "--workers", type=click.IntRange(min=1), default=1)
@click.option("--reload", is_flag=True, default=False, help="restart when source files change")
@di.inject
def serve(
    workers: int,
    reload: bool,
    boot_cf: BootConfiguration = di.Provide["_boot_config"],
    logging_cf: LoggingSettings = di.Provide["config.logging", di.as_(LoggingSettings)],  # noqa: B008
    web_cf: WebSettings = di.Provide["config.web", di.as_(WebSettings)],  # noqa: B008
):
    """Start the grade import and review API."""
    os.environ["__Markbook_BOOT"] = boot_cf.model_dump_json()
    uvicorn.run(
        "markbook.web.main:create_app",
        factory=True,
        reload=reload,
        workers=workers,
        log_config=logging_cf.model_dump(),
        host=str(web_cf.backend.host),
        port=web_cf.backend.port,
    )
