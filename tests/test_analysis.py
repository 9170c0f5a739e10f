"""
Tests for post-processing: histograms, R-hat, ESS, metrics, studies, I/O and plots.
"""

import numpy as np
import pandas as pd
import pytest

from discrete_mcmc import (
    ChainLengthSensitivity,
    ConfigurationError,
    DiscreteMetropolisSampler,
    MCMCConfig,
    PosteriorResultsAnalyzer,
    PosteriorVisualizer,
    compare_histograms,
    compute_state_metrics,
    cowboy_hat_model,
    load_model_csv,
    metropolis_chain,
    save_chain_csv,
    save_results_csv,
)
from discrete_mcmc.utils import (
    autocorrelation,
    effective_sample_size,
    gelman_rubin,
    normalized_histogram,
    state_indicators,
    visitation_histogram,
)


@pytest.fixture(scope="module")
def small_results():
    config = MCMCConfig(n_iterations=5000, burn_in=100, n_chains=3, seed=3, verbose=False)
    return DiscreteMetropolisSampler(cowboy_hat_model(), config).run()


class TestHistograms:

    def test_zero_filled(self):
        counts = visitation_histogram(np.array([0, 0, 2]), ["a", "b", "c"])
        assert list(counts.index) == ["a", "b", "c"]
        assert list(counts) == [2, 0, 1]

    def test_normalized(self):
        freq = normalized_histogram(np.array([0, 1, 1, 1]), ["a", "b"])
        assert list(freq) == [0.25, 0.75]

    def test_empty_chain(self):
        assert normalized_histogram(np.array([], dtype=np.int64), ["a", "b"]).isna().all()

    def test_chain_histogram(self):
        chain = metropolis_chain(cowboy_hat_model(), "Texas", 1000, np.random.default_rng(0))
        counts = chain.histogram()
        assert int(counts.sum()) == 1000
        assert int(chain.histogram(burn_in=100, thinning=10).sum()) == 90
        assert chain.frequencies().sum() == pytest.approx(1.0)

    def test_state_indicators(self):
        ind = state_indicators(np.array([1, 0, 1]), 3)
        assert ind.shape == (3, 3)
        assert np.array_equal(ind.sum(axis=0), [1.0, 2.0, 0.0])


class TestDiagnostics:

    def test_gelman_rubin_converged(self):
        rng = np.random.default_rng(0)
        chains = [rng.normal(size=(5000, 2)) for _ in range(4)]
        rhat = gelman_rubin(chains)
        assert rhat.shape == (2,)
        assert np.all(rhat < 1.01)

    def test_gelman_rubin_separated_chains(self):
        rng = np.random.default_rng(0)
        chains = [rng.normal(loc=5.0 * i, size=(1000, 1)) for i in range(3)]
        assert gelman_rubin(chains)[0] > 2.0

    def test_gelman_rubin_single_chain_and_constant(self):
        assert np.isnan(gelman_rubin([np.ones((100, 1))])).all()
        assert np.isnan(gelman_rubin([np.ones((100, 1)), np.ones((100, 1))])).all()

    def test_autocorrelation(self):
        x = np.random.default_rng(1).normal(size=10000)
        rho = autocorrelation(x, 5)
        assert rho[0] == pytest.approx(1.0)
        assert np.all(np.abs(rho[1:]) < 0.05)
        assert np.isnan(autocorrelation(np.ones(10), 3)).all()

    def test_effective_sample_size(self):
        iid = np.random.default_rng(2).normal(size=5000)
        assert 3000 < effective_sample_size(iid) < 7000
        ar = np.zeros(5000)
        noise = np.random.default_rng(3).normal(size=5000)
        for t in range(1, 5000):
            ar[t] = 0.9 * ar[t - 1] + noise[t]
        assert effective_sample_size(ar) < 1000


class TestMetrics:

    def test_compute_state_metrics(self):
        freq = pd.Series([0.5, 0.3, 0.2], index=["a", "b", "c"])
        exact = pd.Series([0.2, 0.6, 0.2], index=["c", "b", "a"])
        metrics = compute_state_metrics(freq, exact)
        assert metrics['max_abs_error'] == pytest.approx(0.3)
        assert metrics['tvd'] == pytest.approx(0.3)
        assert metrics['map_estimate'] == "a"
        assert metrics['map_exact'] == "b"
        assert list(metrics['table'].columns) == ["estimate", "exact", "abs_error"]

    def test_compare_identical_histograms(self):
        counts = pd.Series([500, 300, 0], index=["a", "b", "c"])
        out = compare_histograms(counts, counts.copy())
        assert out['statistic'] == pytest.approx(0.0)
        assert out['p_value'] == pytest.approx(1.0)
        assert out['dof'] == 1
        assert out['states'] == ["a", "b"]

    def test_compare_different_histograms(self):
        a = pd.Series([900, 100, 0], index=["a", "b", "c"])
        b = pd.Series([100, 900, 0], index=["a", "b", "c"])
        assert compare_histograms(a, b)['p_value'] < 1e-6

    def test_compare_single_visited_state(self):
        a = pd.Series([10, 0], index=["a", "b"])
        out = compare_histograms(a, a.copy())
        assert out['p_value'] == 1.0

    def test_analyzer(self, small_results, capsys):
        analyzer = PosteriorResultsAnalyzer(small_results)
        metrics = analyzer.compute_metrics()
        assert metrics['n_samples'] == 3 * 4900
        assert metrics['map_estimate'] == "Texas"
        assert metrics['max_abs_error'] < 0.05
        analyzer.print_summary(metrics)
        out = capsys.readouterr().out
        assert "Texas" in out
        assert "Total variation distance" in out


class TestSensitivity:

    def test_chain_length_sensitivity(self, tmp_path):
        analysis = ChainLengthSensitivity(n_replications=2, seed=1)
        df = analysis.run(cowboy_hat_model(), N_values=[200, 20000])
        assert len(df) == 4
        assert set(df['N']) == {200, 20000}
        assert {"freq_Texas", "max_abs_error", "tvd", "acceptance_rate"} <= set(df.columns)

        summary = ChainLengthSensitivity.summarize(df)
        assert list(summary['N']) == [200, 20000]
        assert summary['tvd_mean'].iloc[1] < 0.05

        path = tmp_path / "sens.png"
        analysis.plot_results(df, save_path=str(path))
        assert path.exists()

    def test_replications_reproducible(self):
        model = cowboy_hat_model()
        a = ChainLengthSensitivity(n_replications=1, seed=5).run_single_replication(model, 500, 0)
        b = ChainLengthSensitivity(n_replications=1, seed=5).run_single_replication(model, 500, 0)
        assert a == b


class TestDataIO:

    def test_load_model_csv(self, tmp_path):
        path = tmp_path / "model.csv"
        path.write_text(
            "state,prior,likelihood\n"
            "Texas,0.7,0.10\n"
            "Montana,0.1,0.09\n"
            "California,0.15,0.01\n"
            "Virginia,0.05,0.0001\n"
        )
        model, summary = load_model_csv(path)
        assert model.states == cowboy_hat_model().states
        assert np.allclose(model.numerators(), cowboy_hat_model().numerators())
        assert summary['n_states'] == 4
        assert summary['prior_normalized']
        assert summary['n_zero_numerator'] == 0

    def test_load_custom_columns(self, tmp_path):
        path = tmp_path / "model.csv"
        path.write_text("region,p,lik\nA,2,0.5\nB,6,0.25\n")
        model, summary = load_model_csv(path, state_col="region", prior_col="p", likelihood_col="lik")
        assert model.prior["B"] == 6.0
        assert not summary['prior_normalized']

    @pytest.mark.parametrize("body", [
        "state,prior\nA,0.5\nB,0.5\n",
        "state,prior,likelihood\nA,0.5,0.2\nB,0.5,1.2\n",
        "state,prior,likelihood\nA,0.5,0.2\nB,,0.3\n",
        "state,prior,likelihood\nA,0.5,0.2\nB,abc,0.3\n",
        "state,prior,likelihood\nA,1.0,0.2\n",
    ])
    def test_load_invalid(self, tmp_path, body):
        path = tmp_path / "bad.csv"
        path.write_text(body)
        with pytest.raises(ConfigurationError):
            load_model_csv(path)

    def test_save_chain_csv(self, tmp_path):
        chain = metropolis_chain(cowboy_hat_model(), "Montana", 50, np.random.default_rng(0))
        path = save_chain_csv(chain, tmp_path / "out" / "chain.csv")
        df = pd.read_csv(path)
        assert list(df.columns) == ["step", "state", "proposal", "accepted", "prior", "likelihood"]
        assert len(df) == 50
        assert df['state'].iloc[0] == "Montana"
        assert list(df['state']) == chain.labels()

    def test_save_results_csv(self, tmp_path, small_results):
        path = save_results_csv(small_results, tmp_path / "posterior.csv")
        df = pd.read_csv(path, index_col="state")
        assert list(df.index) == ["Texas", "Montana", "California", "Virginia"]
        assert df['frequency'].sum() == pytest.approx(1.0)


class TestVisualization:

    def test_plot_diagnostics(self, tmp_path, small_results):
        path = tmp_path / "diag.png"
        PosteriorVisualizer.plot_diagnostics(small_results, save_path=str(path), max_trace=500)
        assert path.exists()
