from pathlib import Path

import typer


def image_paths_callback(ctx: typer.Context, value: list[Path]):
    if ctx.resilient_parsing:
        return
    missing = [path for path in value if not path.is_file()]
    if missing:
        raise typer.BadParameter(
            message=f"image file(s) not found: {', '.join(path.as_posix() for path in missing)}",
        )
    return value


def output_path_callback(ctx: typer.Context, value: Path | None):
    if ctx.resilient_parsing or value is None:
        return value
    if not value.parent.exists():
        raise typer.BadParameter(
            message=f"output directory: '{value.parent.as_posix()}' does not exist",
        )
    return value
