"""
Command-line interface entry points.

These functions are registered as console scripts in pyproject.toml.
Usage after installing the package:
    cowboy-hat-baseline
    cowboy-hat-montana
    chain-length-sensitivity
    scale-invariance
"""

from .analysis import PosteriorResultsAnalyzer
from .config import configure_plotting, BASELINE_DIR, SENSITIVITY_DIR
from .data_io import save_chain_csv, save_results_csv
from .model import cowboy_hat_model
from .samplers import DiscreteMetropolisSampler, MCMCConfig
from .sensitivity import ChainLengthSensitivity, scale_invariance_check
from .visualization import PosteriorVisualizer


def _run_and_report(model, config: MCMCConfig, outdir) -> dict:
    outdir.mkdir(parents=True, exist_ok=True)

    print("Model:")
    print(model.to_frame().to_string())

    sampler = DiscreteMetropolisSampler(model, config)
    results = sampler.run()

    analyzer = PosteriorResultsAnalyzer(results)
    metrics = analyzer.compute_metrics()
    analyzer.print_summary(metrics)

    PosteriorVisualizer.plot_diagnostics(results, save_path=str(outdir / "diagnostics.png"))
    save_results_csv(results, outdir / "posterior.csv")
    save_chain_csv(results['all_chains'][0], outdir / "chain_0.csv")
    print(f"Results saved to {outdir}")
    return results


def cowboy_hat_baseline():
    """Which state is a cowboy-hat wearer from? 4 chains x 200,000 steps."""
    configure_plotting()

    config = MCMCConfig(
        n_iterations=200000,
        burn_in=1000,
        thinning=1,
        n_chains=4,
        seed=42,
        initial_state="Texas",
    )
    _run_and_report(cowboy_hat_model(), config, BASELINE_DIR / "cowboy_hat")


def cowboy_hat_montana():
    """Same question after learning that every Montanan wears a cowboy hat."""
    configure_plotting()

    config = MCMCConfig(
        n_iterations=200000,
        burn_in=1000,
        thinning=1,
        n_chains=4,
        seed=42,
        initial_state="Texas",
    )
    _run_and_report(cowboy_hat_model(all_montanans_wear_hats=True), config,
                    BASELINE_DIR / "cowboy_hat_montana")


def chain_length_sensitivity():
    """Error vs chain length on the cowboy-hat model."""
    configure_plotting()

    analysis = ChainLengthSensitivity(n_replications=10, seed=7)
    df = analysis.run(cowboy_hat_model(), N_values=[100, 1000, 10000, 100000, 1000000])

    outdir = SENSITIVITY_DIR / "chain_length"
    outdir.mkdir(parents=True, exist_ok=True)

    csv_path = outdir / "chain_length_sensitivity.csv"
    df.to_csv(csv_path, index=False)
    print(f"\nResults saved to {csv_path}")
    print(ChainLengthSensitivity.summarize(df).to_string(index=False))

    analysis.plot_results(df, save_path=str(outdir / "chain_length_sensitivity.png"))


def scale_invariance():
    """Rescaling the prior or the likelihood must not change the posterior."""
    model = cowboy_hat_model()

    print("\n" + "="*60)
    print("SCALE INVARIANCE (chi-square test of homogeneity)")
    print("="*60)
    for target, factor in (("prior", 3.7), ("prior", 0.01), ("likelihood", 0.5)):
        out = scale_invariance_check(model, factor, target=target, seed=11)
        verdict = 'OK' if out['p_value'] > 0.01 else 'WARNING'
        print(
            f"  {target:>10s} x {factor:<6g}: chi2={out['statistic']:.3f}, "
            f"dof={out['dof']}, p={out['p_value']:.3f} {verdict}"
        )
    print("="*60 + "\n")


if __name__ == "__main__":
    # Default: run the cowboy-hat baseline
    cowboy_hat_baseline()
