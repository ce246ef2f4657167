"""
Mean vs Median Example
======================

Compares the sampling distributions of the mean and the median, first for
a normal population and then for a skewed one.
"""

from mlmsim.stats.sampling import compare_mean_median

print("=" * 60)
print("MEAN VS MEDIAN EXAMPLE")
print("=" * 60)

for population, params in [("normal", {}), ("exponential", {"scale": 1.0})]:
    result = compare_mean_median(sample_size=25, n_samples=10_000, rng=2208, population=population, **params)
    print(f"\n{population.upper()} POPULATION (n = 25):")
    print(f"  SD of sample means:   {result['sd_mean']:.4f}")
    print(f"  SD of sample medians: {result['sd_median']:.4f}")
    print(f"  Efficiency of the mean relative to the median: {result['efficiency']:.2f}")

# Optional: overlay both sampling distributions
# from mlmsim.utils.visualization import plot_sampling_distribution
# fig = plot_sampling_distribution([result["means"], result["medians"]], ["mean", "median"])
