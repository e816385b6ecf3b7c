from geogrid.grid_assembly import build_result_grid, rank_summary
from geogrid.models import Competitor
from geogrid.pdf_export import ExportOptions, build_report_pdf, rank_distribution_png


def test_rank_distribution_png(grid_result):
    png = rank_distribution_png(rank_summary(build_result_grid(grid_result)))
    assert png.startswith(b"\x89PNG")


def test_report_with_every_section(grid_result):
    points = build_result_grid(grid_result)
    competitors = [
        Competitor(id="p1", name="Café Sparkle ☕", ranking=1, distance_km=0.8, rating=4.6,
                   user_ratings_total=120, category="Car Wash"),
        Competitor(id="p2", name="Quick Lube", ranking=2, distance_km=1.9),
    ]
    fake_map = rank_distribution_png(rank_summary(points))
    pdf = build_report_pdf(grid_result, points, competitors=competitors, history=[], map_png=fake_map)
    assert pdf.startswith(b"%PDF")


def test_report_respects_options(grid_result):
    points = build_result_grid(grid_result)
    full = build_report_pdf(grid_result, points, map_png=rank_distribution_png({}))
    trimmed = build_report_pdf(grid_result, points, map_png=rank_distribution_png({}),
                               options=ExportOptions(include_ranking_map=False))
    assert trimmed.startswith(b"%PDF")
    assert len(trimmed) < len(full)
