# Fan-out / fan-in across languages:
#
#   init -> (double, square, shout, count) -> merge
#
# Run with:  polyflow run parallel_demo --parallel
from polyflow import js, lua, python, shell, wf

INIT = """
def run():
    return {"value": 7, "word": "polyflow"}
"""

DOUBLE = """
def run(inputs):
    return {"doubled": inputs["init"]["value"] * 2}
"""

SQUARE = """
function run(inputs)
  local v = inputs.init.value
  return { squared = v * v }
end
"""

SHOUT = """
function run(inputs) {
  return { shouted: inputs.init.word.toUpperCase() };
}
"""

COUNT = """
run() {
  word=$(parse_input init | sed 's/.*"word": *"\\([^"]*\\)".*/\\1/')
  echo "{\\"length\\": ${#word}}"
}
"""

MERGE = """
def run(inputs):
    return {
        "doubled": inputs["double"]["doubled"],
        "squared": inputs["square"]["squared"],
        "shouted": inputs["shout"]["shouted"],
        "length": inputs["count"]["length"],
    }
"""


def workflow():
    return wf(
        "parallel_demo",
        python("init", INIT),
        python("double", DOUBLE, needs=["init"]),
        lua("square", SQUARE, needs=["init"]),
        js("shout", SHOUT, needs=["init"]),
        shell("count", COUNT, needs=["init"]),
        python("merge", MERGE, needs=["double", "square", "shout", "count"]),
        description="Fan-out over four languages, then merge",
    )
