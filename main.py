import json

import click

from kdp_press.assets.fake_provider import FakeAssetProvider
from kdp_press.assets.http_provider import HttpAssetProvider
from kdp_press.config.paper import get_paper_table
from kdp_press.config.settings import settings_from_env
from kdp_press.config.sizes import SIZES, resolve_page_spec
from kdp_press.cover.cover_renderer import compute_cover_layout
from kdp_press.cover.cover_validator import validate_cover
from kdp_press.errors import KdpPressError
from kdp_press.pipeline.batch import run_batch
from kdp_press.validator.kdp_validator import validate_interior


def _print_result(result):
    if result.ok:
        rec = result.record
        click.echo(f"✅ {rec.title}")
        click.echo(f"   Units: {rec.unit_count}, price: {rec.price:.2f}, output: {result.output_dir}")
        if rec.synthetic:
            click.echo("   ⚠️  Built from synthetic placeholder art - not for sale")
    else:
        f = result.failure
        click.echo(f"❌ {f.name}: {f.stage} stage failed ({f.error_type}): {f.reason}")


def _print_issues(issues):
    if not issues:
        click.echo("✅ No issues found.")
    for iss in issues:
        click.echo(f"{iss.level.upper()}: {iss.message}")


@click.command(help="Build print-ready coloring books and clipart bundles, or validate existing interior/cover PDFs.")
@click.option("--product", type=click.Choice(["coloring_book", "clipart_bundle"]), default="coloring_book", show_default=True, help="What to build")
@click.option("--theme", type=str, default=None, help="Theme, e.g. 'Ocean Animals'")
@click.option("--style", type=str, default="mandala", show_default=True, help="Illustration style")
@click.option("--pages", type=click.IntRange(min=1), default=30, show_default=True, help="Interior page count (coloring book)")
@click.option("--difficulty", type=click.Choice(["easy", "medium", "advanced", "mixed"]), default="medium", show_default=True, help="Page difficulty (coloring book)")
@click.option("--trim", type=click.Choice(sorted(SIZES.keys())), default="8.5x11", show_default=True, help="Trim size key")
@click.option("--paper", type=str, default="white", show_default=True, help="Paper type for spine width")
@click.option("--age-group", "age_group", type=click.Choice(["kids", "adults", "seniors", "all"]), default=None, help="Target audience (coloring book)")
@click.option("--back-pages/--no-back-pages", "back_pages", default=True, show_default=True, help="Blank back after every page for single-sided printing")
@click.option("--seed", type=int, default=0, show_default=True, help="Seed for mixed difficulty and fake art")
@click.option("--count", type=click.IntRange(min=1), default=20, show_default=True, help="Element count (clipart bundle)")
@click.option("--resolution", type=click.Choice(["standard", "high", "ultra"]), default="high", show_default=True, help="Element size (clipart bundle)")
@click.option("--color", "colors", type=str, multiple=True, help="Hex color for the palette; repeat for more (clipart bundle)")
@click.option("--variations", is_flag=True, default=False, help="Add tinted color variations (clipart bundle)")
@click.option("--subject", "subjects", type=str, multiple=True, help="Element subject; repeat in element order (clipart bundle)")
@click.option("--batch-file", "batch_file", type=click.Path(exists=True, dir_okay=False), default=None, help="JSON file with a list of publication configs")
@click.option("--out-root", "out_root", type=str, default=None, help="Output root directory (default: $KDP_PRESS_OUTPUT_ROOT or outputs)")
@click.option("--provider", "provider_name", type=click.Choice(["fake", "http"]), default="fake", show_default=True, help="Asset provider")
@click.option("--provider-url", "provider_url", type=str, default="http://localhost:7860", show_default=True, help="Base URL for the http provider")
@click.option("--provider-model", "provider_model", type=str, default="line-art", show_default=True, help="Model name sent to the http provider")
@click.option("--max-workers", "max_workers", type=click.IntRange(min=1), default=None, help="Concurrent asset requests per publication")
@click.option("--max-concurrent", "max_concurrent", type=click.IntRange(min=1), default=None, help="Publications built in parallel")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print results as JSON")
@click.option("--validate-path", "validate_path", type=str, default=None, help="If provided, validates the given interior PDF against --trim and exits.")
@click.option("--validate-pages", "validate_pages", type=int, default=None, help="Expected interior page count for --validate-path")
@click.option("--validate-cover-path", "validate_cover_path", type=str, default=None, help="If provided, validates the given COVER PDF (uses --trim, --pages, --paper, --bleed-in) and exits")
@click.option("--bleed-in", "bleed_in", type=float, default=0.125, show_default=True, help="Bleed in inches")
def main(product, theme, style, pages, difficulty, trim, paper, age_group, back_pages, seed, count, resolution, colors, variations, subjects,
         batch_file, out_root, provider_name, provider_url, provider_model, max_workers, max_concurrent, as_json,
         validate_path, validate_pages, validate_cover_path, bleed_in):
    try:
        # Validation mode
        if validate_cover_path:
            spec = resolve_page_spec(trim, bleed_in)
            layout = compute_cover_layout(spec, pages, paper, paper_table=get_paper_table())
            report = validate_cover(validate_cover_path, layout)
            click.echo(f"Cover validation for {validate_cover_path}")
            click.echo(f"Expected size: {report.expected_width_pt:.2f} x {report.expected_height_pt:.2f} pt (spine {report.expected_spine_pt:.2f} pt)")
            click.echo(f"Actual size:   {report.width_pt:.2f} x {report.height_pt:.2f} pt")
            _print_issues(report.issues)
            if not report.ok:
                raise SystemExit(1)
            return

        if validate_path:
            spec = resolve_page_spec(trim, bleed_in)
            report = validate_interior(validate_path, spec, expected_pages=validate_pages)
            click.echo(f"Validation for {validate_path} (trim={report.trim_key})")
            click.echo(f"Pages: {report.page_count}")
            click.echo(f"First page size: {report.page_size_pt[0]:.2f} x {report.page_size_pt[1]:.2f} pt")
            _print_issues(report.issues)
            if not report.ok:
                raise SystemExit(1)
            return

        # Generation mode
        if batch_file:
            with open(batch_file) as f:
                configs = json.load(f)
            if not isinstance(configs, list):
                configs = [configs]
        elif theme:
            if product == "coloring_book":
                configs = [{
                    "product": product,
                    "theme": theme,
                    "style": style,
                    "difficulty": difficulty,
                    "page_count": pages,
                    "trim": trim,
                    "paper": paper,
                    "age_group": age_group,
                    "include_back_pages": back_pages,
                    "bleed_in": bleed_in,
                    "seed": seed,
                }]
            else:
                configs = [{
                    "product": product,
                    "theme": theme,
                    "style": style,
                    "count": count,
                    "resolution": resolution,
                    "color_scheme": list(colors),
                    "include_variations": variations,
                    "subjects": list(subjects),
                }]
        else:
            raise click.UsageError("Provide --theme, --batch-file, --validate-path or --validate-cover-path")

        settings = settings_from_env(
            output_root=out_root,
            max_workers=max_workers,
            max_concurrent_publications=max_concurrent,
            # the fake provider only ever produces placeholder art
            allow_synthetic=True if provider_name == "fake" else None,
        )
        if provider_name == "fake":
            provider = FakeAssetProvider(seed=seed)
        else:
            provider = HttpAssetProvider(base_url=provider_url, model=provider_model)

        click.echo(f"📚 Building {len(configs)} publication(s) into {settings.output_root} with the {provider.name} provider...")
        results = run_batch(configs, provider, settings)
    except KdpPressError as e:
        click.echo(f"❌ {type(e).__name__}: {e}", err=True)
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        for result in results:
            _print_result(result)

    if not all(r.ok for r in results):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
