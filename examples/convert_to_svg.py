import dxfsvg


result = dxfsvg.to_svg(
    "examples/data/line.dxf",
    "/tmp/line_out.svg",
)
print(result)
