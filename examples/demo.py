#!/usr/bin/env python
"""
semexplore Demo - bundles, views, joins and lineage

Run: python examples/demo.py
"""

import semexplore as se

ORG_CSV = """id,name,manager,headcount
ceo,Chief Executive,,1
cto,Engineering,ceo,40
cfo,Finance,ceo,12
web,Web Team,cto,15
data,Data Team,cto,9
"""

BUDGET_JSON = """[
  {"team": "ceo", "budget": 500},
  {"team": "cto", "budget": 4200},
  {"team": "web", "budget": 1300},
  {"team": "ops", "budget": 800}
]"""

repo = se.InMemoryRepository()

# === Load sources into bundles ===
org = repo.add_bundle(
    se.DataBundle(
        id="org",
        name="Org chart",
        schema_id="tabular-default",
        source=se.load_source("org.csv", ORG_CSV),
        mappings=[
            se.ColumnMapping("id", "row_id"),
            se.ColumnMapping("headcount", "measure", "Headcount"),
        ],
    )
)
budget = repo.add_bundle(
    se.DataBundle(
        id="budget",
        name="Budget",
        schema_id="tabular-default",
        source=se.load_source("budget.json", BUDGET_JSON),
        mappings=[
            se.ColumnMapping("team", "row_id"),
            se.ColumnMapping("budget", "measure", "Budget"),
        ],
    )
)

print("=" * 60)
print(f"semexplore v{se.__version__} Demo")
print("=" * 60)

# === Hierarchy view over the same rows ===
tree = se.transform_to_hierarchy(
    org.source,
    [
        se.ColumnMapping("id", "node_id"),
        se.ColumnMapping("manager", "parent_id"),
        se.ColumnMapping("name", "node_label"),
        se.ColumnMapping("headcount", "metric", "Headcount"),
    ],
)
print("\nHierarchy:")
for node in se.transforms.iter_hierarchy(tree):
    print(f"  {'  ' * node.depth}{node.label} ({node.metrics['Headcount']:.0f})")

# === Column profiles ===
print("\nProfiles:")
for profile in repo.view("budget"):
    print(f"  {profile.display_name:<8} {profile.data_type:<7} quality={profile.quality_score:.0f}")

# === Join ===
join, vbundle = repo.create_join(
    "Org x Budget",
    "org",
    "budget",
    se.suggest_join_conditions(repo.get_schema("tabular-default"), repo.get_schema("tabular-default"))[:1],
    join_type=se.JoinType.FULL,
)
result = repo.materialize(vbundle.id)
print(f"\n{vbundle.name}: {len(result)} rows")
print(result.to_dataframe()[["left_id", "left_headcount", "right_team", "right_budget"]])
print(f"Match rate (left): {result.stats.left_match_rate:.0%}")

# === Lineage ===
lineage = repo.build_lineage()
print("\nLineage stats:", lineage.get_stats().to_dict())
print("Upstream of", vbundle.name, "->", [n.label for n in lineage.get_upstream_bundles(vbundle.id)])

se.export_to_json(lineage, "lineage.json")
print("\nExported lineage to lineage.json")
