"""CLIコマンド（flask collect / load-clinics / fetch-images）"""

import logging
from pathlib import Path

import click
from flask import Flask

from dermclinics.config import config
from dermclinics.exceptions import DermClinicsError
from dermclinics.services.clinic_store import SupabaseClinicStore, load_datasets
from dermclinics.services.collector import ClinicCollector, parse_states
from dermclinics.services.image_fetcher import UnsplashImageFetcher

logger = logging.getLogger(__name__)


@click.command("collect")
@click.option("--states", "states_arg", default=None, help="カンマ区切りの州コード（例: CA,NY）。省略時は全州")
def collect_command(states_arg: str | None) -> None:
    """Places Text Searchで皮膚科クリニックを収集し、州ごとのJSONに保存"""
    try:
        states = parse_states(states_arg)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--states")

    try:
        config.validate_places_config()
        collector = ClinicCollector()
    except DermClinicsError as e:
        raise click.ClickException(e.message)

    summary = collector.collect(states)
    for state_code, total in summary["collected"].items():
        click.echo(f"  {state_code}: {total} clinics")
    for state_code, error in summary["failed"].items():
        click.echo(f"  {state_code}: FAILED ({error})", err=True)
    if summary["aborted"]:
        raise click.ClickException("Request cap hit, collection aborted")


@click.command("load-clinics")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="収集結果ディレクトリ（省略時は設定値）",
)
def load_clinics_command(data_dir: Path | None) -> None:
    """収集結果JSONをSupabaseのclinicsテーブルにupsert"""
    clinics = load_datasets(data_dir or config.data_dir)
    if not clinics:
        raise click.ClickException("No clinics found to load")

    try:
        saved = SupabaseClinicStore().upsert_clinics(clinics)
    except DermClinicsError as e:
        raise click.ClickException(f"{e.message} {e.details}")
    click.echo(f"Loaded {saved} clinics into Supabase")


@click.command("fetch-images")
@click.option("--total", type=click.IntRange(min=1), default=None, help="保存枚数（既定50）")
def fetch_images_command(total: int | None) -> None:
    """Unsplashからプレースホルダー画像を取得"""
    try:
        manifest = UnsplashImageFetcher().fetch(total)
    except DermClinicsError as e:
        raise click.ClickException(e.message)
    click.echo(f"Saved {len(manifest)} images. Credits in manifest.json")


def register_commands(app: Flask) -> None:
    """アプリにCLIコマンドを登録"""
    app.cli.add_command(collect_command)
    app.cli.add_command(load_clinics_command)
    app.cli.add_command(fetch_images_command)
