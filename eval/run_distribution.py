"""Offline check that draws follow the computed weights.

Usage:
  python eval/run_distribution.py --catalog backend/data/sample_places.json \
      --lat 47.6230 --lon -122.3204 --draws 20000 --seed 7 --out eval/report_dist
"""

from __future__ import annotations

import argparse
import csv
import random
import sys
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "backend" / "src"
if str(SRC) not in sys.path:
  sys.path.insert(0, str(SRC))

from models import GeoPoint, SelectionRequest  # noqa: E402
from services.catalog import load_catalog  # noqa: E402
from services.selector import rank_candidates, select_place  # noqa: E402


@dataclass
class Row:
  place_id: str
  weight: float
  expected: float
  observed: int
  draws: int

  @property
  def observed_share(self) -> float:
    return self.observed / self.draws if self.draws else 0.0


def chi_squared(rows: list[Row]) -> float:
  stat = 0.0
  for row in rows:
    exp_count = row.expected * row.draws
    if exp_count > 0:
      stat += (row.observed - exp_count) ** 2 / exp_count
  return stat


def main() -> None:
  parser = argparse.ArgumentParser(description='Empirical vs expected selection frequencies')
  parser.add_argument('--catalog', default='backend/data/sample_places.json', help='Catalog JSON path')
  parser.add_argument('--lat', type=float, default=47.6230, help='Origin latitude')
  parser.add_argument('--lon', type=float, default=-122.3204, help='Origin longitude')
  parser.add_argument('--radius-m', type=float, default=3218.69, help='Search radius in meters')
  parser.add_argument('--min-rating', type=float, default=3.0, help='Inclusive rating threshold')
  parser.add_argument('--include-closed', action='store_true', help='Keep places known to be closed')
  parser.add_argument('--recent', nargs='*', default=[], help='Recent categories, most recent last')
  parser.add_argument('--draws', type=int, default=10000, help='Number of draws')
  parser.add_argument('--seed', type=int, default=None, help='Seed for the random source')
  parser.add_argument('--out', default='eval/report_dist', help='Output directory for reports')
  args = parser.parse_args()

  catalog_path = Path(args.catalog)
  if not catalog_path.exists():
    raise FileNotFoundError(f'catalog file not found: {catalog_path}')

  out_dir = Path(args.out)
  out_dir.mkdir(parents=True, exist_ok=True)

  catalog = load_catalog(catalog_path)
  origin = GeoPoint(lat=args.lat, lon=args.lon)
  request = SelectionRequest(
    origin=origin,
    radius_meters=args.radius_m,
    min_rating=args.min_rating,
    exclude_closed=not args.include_closed,
    recent_categories=tuple(args.recent),
  )
  candidates = catalog.places_within(origin, args.radius_m)
  ranked = rank_candidates(request, candidates)
  if not ranked:
    print('No eligible places for this request; nothing to simulate.')
    return

  rng = random.Random(args.seed)
  counts: Counter[str] = Counter()
  for _ in range(max(1, args.draws)):
    result = select_place(request, candidates, rng=rng)
    if result.ok:
      counts[result.place.id] += 1

  draws = sum(counts.values())
  total = sum(c.weight for c in ranked)
  rows = [
    Row(place_id=c.place.id, weight=c.weight, expected=c.weight / total, observed=counts[c.place.id], draws=draws)
    for c in ranked
  ]

  freq_path = out_dir / 'frequencies.csv'
  with freq_path.open('w', newline='', encoding='utf-8') as fh:
    writer = csv.writer(fh)
    writer.writerow(['place_id', 'weight', 'expected_share', 'observed', 'observed_share'])
    for row in rows:
      writer.writerow([
        row.place_id,
        f'{row.weight:.4f}',
        f'{row.expected:.4f}',
        row.observed,
        f'{row.observed_share:.4f}',
      ])

  stat = chi_squared(rows)
  summary_path = out_dir / 'summary.md'
  with summary_path.open('w', encoding='utf-8') as fh:
    fh.write('# Distribution Summary\n\n')
    fh.write(f'- Catalog: {catalog_path}\n')
    fh.write(f'- Eligible candidates: {len(rows)}\n')
    fh.write(f'- Draws: {draws}\n')
    fh.write(f'- Seed: {args.seed if args.seed is not None else "unset"}\n')
    fh.write(f'- Chi-squared: {stat:.3f} (df={len(rows) - 1})\n\n')
    fh.write('| place | weight | expected | observed |\n|---|---|---|---|\n')
    for row in rows:
      fh.write(f'| {row.place_id} | {row.weight:.4f} | {row.expected:.3f} | {row.observed_share:.3f} |\n')

  print(f'Simulation finished. Frequencies written to {freq_path}')


if __name__ == '__main__':
  main()
