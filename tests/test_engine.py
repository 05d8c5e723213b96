"""Tests for method dispatch, configuration and result tabulation."""

import json

import numpy as np
import pandas as pd
import pytest
import yaml

from enrichcore import (
    AdjustmentMethod,
    DEFAULT_SEED,
    EnrichmentConfig,
    EnrichmentMethod,
    GeneSetCollection,
    GSEAResult,
    ORAResult,
    load_config,
    read_config_mapping,
    results_to_frame,
    run_enrichment,
)
from enrichcore.core.exceptions import InsufficientPermutationsError, InvalidInputError, InvalidParametersError


class TestRunEnrichment:
    """Tests for run_enrichment()."""

    def test_dispatches_ora(self, universe_100):
        """method=ORA returns ORAResult records."""
        collection = GeneSetCollection.from_dict({"TOP": universe_100['genes'][:20]})
        results = run_enrichment(
            collection,
            EnrichmentConfig(method=EnrichmentMethod.ORA),
            interesting=universe_100['interesting'],
            reference=universe_100['reference'],
        )
        assert len(results) == 1
        assert isinstance(results[0], ORAResult)

    def test_dispatches_gsea(self, linear_ranked_list):
        """method=GSEA returns GSEAResult records."""
        collection = GeneSetCollection.from_dict({"TOP5": list(linear_ranked_list.gene_ids[:5])})
        results = run_enrichment(
            collection,
            EnrichmentConfig(method="gsea", permutations=100),
            ranked_list=linear_ranked_list,
        )
        assert len(results) == 1
        assert isinstance(results[0], GSEAResult)

    def test_ora_requires_lists(self, universe_100):
        """ORA without a reference list raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            run_enrichment(
                GeneSetCollection(),
                EnrichmentConfig(method="ora"),
                interesting=universe_100['interesting'],
            )

    def test_gsea_requires_ranked_list(self, universe_100):
        """GSEA without a ranked list raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            run_enrichment(
                GeneSetCollection(),
                EnrichmentConfig(method="gsea"),
                interesting=universe_100['interesting'],
                reference=universe_100['reference'],
            )

    def test_config_validated_first(self):
        """Invalid parameters are reported before inputs are inspected."""
        with pytest.raises(InsufficientPermutationsError):
            run_enrichment(
                GeneSetCollection(),
                EnrichmentConfig(method="gsea", permutations=0),
            )


class TestEnrichmentConfig:
    """Tests for EnrichmentConfig."""

    def test_defaults(self):
        """Defaults match the documented engine defaults."""
        config = EnrichmentConfig()
        assert config.method is EnrichmentMethod.ORA
        assert (config.min_size, config.max_size) == (5, 2000)
        assert config.permutations == 1000
        assert config.weight_exponent == 1.0
        assert config.seed == DEFAULT_SEED == 42
        assert config.adjustment is AdjustmentMethod.BH
        assert config.validate() is config

    def test_string_enums_coerced(self):
        """Method and adjustment accept strings."""
        config = EnrichmentConfig(method="GSEA", adjustment="bonferroni")
        assert config.method is EnrichmentMethod.GSEA
        assert config.adjustment is AdjustmentMethod.BONFERRONI

    def test_unknown_method_rejected(self):
        """Unknown method string raises InvalidParametersError."""
        with pytest.raises(InvalidParametersError) as exc_info:
            EnrichmentConfig(method="kegg")
        assert exc_info.value.parameter == "method"

    @pytest.mark.parametrize("kwargs,parameter", [
        ({"min_size": 10, "max_size": 5}, "min_size"),
        ({"min_size": -1}, "min_size"),
        ({"n_jobs": 0}, "n_jobs"),
        ({"max_size": 2.5}, "max_size"),
        ({"method": "gsea", "weight_exponent": float("inf")}, "weight_exponent"),
        ({"method": "gsea", "permutations": 10.0}, "permutations"),
        ({"method": "gsea", "seed": -1}, "seed"),
        ({"method": "gsea", "seed": 1.5}, "seed"),
        ({"method": "gsea", "seed": True}, "seed"),
    ])
    def test_invalid_parameters(self, kwargs, parameter):
        """validate() names the offending parameter."""
        with pytest.raises(InvalidParametersError) as exc_info:
            EnrichmentConfig(**kwargs).validate()
        assert exc_info.value.parameter == parameter

    def test_gsea_only_parameters_ignored_for_ora(self):
        """permutations and weight_exponent are not checked for ORA."""
        EnrichmentConfig(method="ora", permutations=0, weight_exponent=-1.0).validate()

    def test_from_dict_round_trip(self):
        """to_dict() output rebuilds an equal config."""
        config = EnrichmentConfig(method="gsea", min_size=15, max_size=500, n_jobs=4, adjustment="BY")
        assert EnrichmentConfig.from_dict(config.to_dict()) == config

    def test_from_dict_rejects_unknown_keys(self):
        """Typos in config keys are errors, not silent defaults."""
        with pytest.raises(InvalidParametersError, match="Unknown config keys"):
            EnrichmentConfig.from_dict({"min_sise": 3})


class TestLoadConfig:
    """Tests for load_config() and read_config_mapping()."""

    def test_yaml(self, tmp_path):
        """YAML mapping loads into a validated config."""
        path = tmp_path / "enrichment.yaml"
        path.write_text(yaml.safe_dump({
            "method": "gsea",
            "min_size": 15,
            "max_size": 500,
            "permutations": 250,
            "seed": 7,
            "adjustment": "BH",
        }))
        config = load_config(path)
        assert config.method is EnrichmentMethod.GSEA
        assert (config.min_size, config.max_size, config.permutations, config.seed) == (15, 500, 250, 7)

    def test_json(self, tmp_path):
        """JSON mapping reads as a plain dict and loads as a config."""
        path = tmp_path / "enrichment.json"
        path.write_text(json.dumps({"method": "ora", "min_size": 3}))
        assert read_config_mapping(path) == {"method": "ora", "min_size": 3}
        assert load_config(str(path)) == EnrichmentConfig(min_size=3)

    def test_empty_yaml_is_defaults(self, tmp_path):
        """An empty YAML file gives {} and therefore the defaults."""
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert read_config_mapping(path) == {}
        assert load_config(path) == EnrichmentConfig()

    def test_invalid_values_rejected(self, tmp_path):
        """Values in the file go through validate()."""
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"method": "gsea", "seed": -3}))
        with pytest.raises(InvalidParametersError) as exc_info:
            load_config(path)
        assert exc_info.value.parameter == "seed"

    def test_missing_file(self, tmp_path):
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_unsupported_suffix(self, tmp_path):
        """Unknown extensions raise InvalidParametersError (a ValueError)."""
        path = tmp_path / "enrichment.toml"
        path.write_text("method = 'ora'")
        with pytest.raises(ValueError, match="Unsupported config format") as exc_info:
            load_config(path)
        assert exc_info.value.parameter == "config_path"

    def test_unparsable_yaml(self, tmp_path):
        """Malformed YAML is reported against config_path."""
        path = tmp_path / "broken.yaml"
        path.write_text("method: [ora\n")
        with pytest.raises(InvalidParametersError, match="Cannot parse"):
            read_config_mapping(path)

    def test_non_mapping_rejected(self, tmp_path):
        """A top-level list raises ValueError."""
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            read_config_mapping(path)


class TestResultsToFrame:
    """Tests for results_to_frame()."""

    def test_ora_frame(self, universe_100):
        """One row per result, overlap genes as sorted lists."""
        genes = universe_100['genes']
        collection = GeneSetCollection.from_dict({"TOP": genes[:20], "MID": genes[5:30]})
        results = run_enrichment(
            collection,
            EnrichmentConfig(),
            interesting=universe_100['interesting'],
            reference=universe_100['reference'],
        )
        df = results_to_frame(results)
        assert isinstance(df, pd.DataFrame)
        assert list(df['gene_set_id']) == [r.gene_set_id for r in results]
        assert df.loc[df['gene_set_id'] == "MID", 'overlap_genes'].iloc[0] == sorted(genes[5:10])
        assert np.all(df['fdr'] >= df['p_value'])

    def test_gsea_frame_drops_running_sum(self, linear_ranked_list):
        """The running-sum profile is not tabulated."""
        collection = GeneSetCollection.from_dict({"TOP5": list(linear_ranked_list.gene_ids[:5])})
        results = run_enrichment(
            collection,
            EnrichmentConfig(method="gsea", permutations=20, keep_running_sum=True),
            ranked_list=linear_ranked_list,
        )
        df = results_to_frame(results)
        assert 'running_sum' not in df.columns
        assert df['leading_edge'].iloc[0] == list(linear_ranked_list.gene_ids[:5])
