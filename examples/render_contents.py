import dxfsvg


def main() -> None:
    drawing = dxfsvg.read("examples/data/dimensions.dxf")

    warnings: list[str] = []
    contents, box = dxfsvg.create_svg_contents(
        drawing,
        warn=lambda message, *context: warnings.append(message),
        add_attributes=lambda entity: {"data-handle": dict(entity).get(5)},
    )
    print(f"markup: {len(contents)} chars")
    print(f"bounding box: {box.as_dict()}")
    for message in warnings:
        print("warning:", message)


if __name__ == "__main__":
    main()
