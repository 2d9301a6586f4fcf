from ..matrix import LDMatrix


def plot_ld(matrix: LDMatrix, stat="r_squared", ax=None):
    """Heatmap of a statistic of the LD matrix."""
    import matplotlib.pyplot as plt

    data = matrix.to_array(stat)

    if ax is None:
        _, ax = plt.subplots()

    im = ax.matshow(data, vmin=0, vmax=1)
    ax.set_xticks(range(len(matrix.ids)))
    ax.set_xticklabels(matrix.ids, rotation=90)
    ax.set_yticks(range(len(matrix.ids)))
    ax.set_yticklabels(matrix.ids)
    ax.figure.colorbar(im, ax=ax)

    return ax


if __name__ == "__main__":
    import asyncio
    import sys

    import matplotlib.pyplot as plt

    from ..pipeline import get_linkage_disequilibrium
    from ..sources import EXAMPLE_SNPS

    matrix = asyncio.run(get_linkage_disequilibrium(
        EXAMPLE_SNPS, sys.argv[1:] or ["EUR"]
    ))

    plot_ld(matrix)
    plt.show()
