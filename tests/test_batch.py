import json
from pathlib import Path

from kdp_press.assets.fake_provider import FakeAssetProvider
from kdp_press.assets.provider import CancellationToken
from kdp_press.pipeline.batch import run_batch
from kdp_press.pipeline.publication import PublicationBuilder


def test_one_bad_config_does_not_stop_the_others(settings, small_book):
    configs = [
        small_book(theme="Ocean Animals"),
        small_book(theme="Forest", trim="9x12"),
        small_book(theme="Desert Plants"),
    ]
    results = run_batch(configs, FakeAssetProvider(), settings)

    assert [r.ok for r in results] == [True, False, True]
    assert results[1].failure.stage == "config"
    assert results[1].failure.error_type == "ConfigError"
    assert "9x12" in results[1].failure.reason
    root = Path(settings.output_root)
    assert sorted(p.name for p in root.iterdir()) == ["desert-plants", "ocean-animals"]


def test_parallel_batch_keeps_input_order(settings, small_book):
    parallel = settings.model_copy(update={"max_concurrent_publications": 3})
    themes = ["Alpha", "Beta", "Gamma", "Delta"]
    results = run_batch([small_book(theme=t) for t in themes], FakeAssetProvider(), parallel)
    assert all(r.ok for r in results)
    assert [r.record.title for r in results] == [f"Mandala {t} Coloring Book" for t in themes]


def test_duplicate_output_directories_are_rejected(settings, small_book):
    configs = [small_book(theme="Ocean Animals"), small_book(theme="ocean  animals!")]
    results = run_batch(configs, FakeAssetProvider(), settings)
    assert results[0].ok
    assert not results[1].ok
    assert results[1].failure.stage == "config"
    assert "ocean-animals" in results[1].failure.reason


def test_mixed_products(settings, small_book):
    clipart = {
        "product": "clipart_bundle",
        "theme": "Stickers",
        "style": "cute",
        "count": 1,
        "resolution": "standard",
    }
    results = run_batch([small_book(), clipart, "not a config"], FakeAssetProvider(), settings)
    assert [r.ok for r in results] == [True, True, False]
    assert results[1].record.product_type == "clipart_bundle"
    assert results[2].failure.stage == "config"


def test_cancelled_batch(settings, small_book):
    token = CancellationToken()
    token.cancel()
    results = run_batch([small_book(theme="A"), small_book(theme="B")], FakeAssetProvider(), settings, token)
    assert [r.failure.error_type for r in results] == ["PublicationCancelled", "PublicationCancelled"]
    assert not Path(settings.output_root).exists()


def test_invalid_config_does_not_claim_its_directory(settings, small_book):
    configs = [small_book(theme="Ocean Animals", trim="9x12"), small_book(theme="Ocean Animals")]
    results = run_batch(configs, FakeAssetProvider(), settings)

    assert [r.ok for r in results] == [False, True]
    assert "9x12" in results[0].failure.reason
    assert (Path(settings.output_root) / "ocean-animals" / "interior.pdf").exists()


def test_bad_paper_table_fails_each_book(settings, small_book, tmp_path):
    broken = settings.model_copy(update={"paper_table_path": str(tmp_path / "missing.json")})
    clipart = {"product": "clipart_bundle", "theme": "Stickers", "style": "cute", "count": 1, "resolution": "standard"}
    results = run_batch([small_book(theme="A"), clipart, small_book(theme="B")], FakeAssetProvider(), broken)

    assert [r.ok for r in results] == [False, True, False]
    for r in (results[0], results[2]):
        assert r.failure.stage == "config"
        assert r.failure.error_type == "ConfigError"
        assert "missing.json" in r.failure.reason


def test_trending_bundles_file_passes_config_stage(settings):
    path = Path(__file__).resolve().parent.parent / "trending_bundles.json"
    configs = json.loads(path.read_text())
    builder = PublicationBuilder(FakeAssetProvider(), settings)

    prepared = [builder.prepare(c) for c in configs]
    assert [p.slug for p in prepared] == ["spring-flowers", "cute-animals", "boho-elements"]
    assert all(p.config.product == "clipart_bundle" for p in prepared)
