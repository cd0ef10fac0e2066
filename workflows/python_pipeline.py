from polyflow import build

EXTRACT = """
def run():
    return {"rows": [3, 1, 4, 1, 5, 9, 2, 6]}
"""

TRANSFORM = """
def run(inputs):
    rows = inputs["extract"]["rows"]
    return {"sorted": sorted(rows), "total": sum(rows)}
"""

LOAD = """
def run(inputs):
    t = inputs["transform"]
    print("loading", len(t["sorted"]), "rows")
    return {"loaded": len(t["sorted"]), "total": t["total"]}
"""

WORKFLOW = (
    build("python_pipeline")
    .describe("Extract, transform and load in plain Python")
    .define_step("extract", "python", EXTRACT)
    .define_step("transform", "python", TRANSFORM, needs=["extract"])
    .define_step("load", "python", LOAD, needs=["transform"])
    .build()
)
