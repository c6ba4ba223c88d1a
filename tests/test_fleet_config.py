"""
Tests for fleet/config.py - environment loading.

Run with: pytest tests/test_fleet_config.py -v
"""

import pytest

from fleet.config import ConfigError, DemandEndpoint, FleetConfig
from fleet.types import Workload


BASE_ENV = {
    "CLUSTER_IPS": "10.0.0.1, 10.0.0.2,10.0.0.3",
    "API_ENDPOINT": "http://oracle.test/assigned",
    "PROVER1_ADDRESS": "0xaaa",
    "PROVER2_ADDRESS": "0xbbb",
}


def env(**overrides):
    data = dict(BASE_ENV)
    for key, value in overrides.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
    return data


class TestNodes:

    def test_addresses_are_stripped_and_ordered(self):
        config = FleetConfig.from_env(env())
        assert [n.address for n in config.nodes] == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]
        assert all(n.password is None for n in config.nodes)

    def test_missing_cluster_ips_is_fatal(self):
        with pytest.raises(ConfigError, match="CLUSTER_IPS"):
            FleetConfig.from_env(env(CLUSTER_IPS=None))

    def test_empty_entry_rejected(self):
        with pytest.raises(ConfigError, match="empty entry"):
            FleetConfig.from_env(env(CLUSTER_IPS="10.0.0.1,,10.0.0.3"))

    def test_passwords_matched_by_position(self):
        config = FleetConfig.from_env(env(SSH_PASSWORDS="p1, p2 ,p3"))
        assert [n.password for n in config.nodes] == ["p1", "p2", "p3"]

    def test_password_count_mismatch(self):
        with pytest.raises(ConfigError, match="must match"):
            FleetConfig.from_env(env(SSH_PASSWORDS="p1,p2"))


class TestDemandEndpoints:

    def test_api_endpoint_with_prover_addresses(self):
        config = FleetConfig.from_env(env())
        endpoint = config.demand_endpoints[Workload.PROVER_2]
        assert endpoint == DemandEndpoint("http://oracle.test/assigned", "0xbbb")
        assert endpoint.params == {"prover": "0xbbb"}

    @pytest.mark.parametrize("missing", ["API_ENDPOINT", "PROVER1_ADDRESS", "PROVER2_ADDRESS"])
    def test_missing_oracle_settings(self, missing):
        with pytest.raises(ConfigError, match="must be set"):
            FleetConfig.from_env(env(**{missing: None}))

    def test_discrete_urls_replace_api_endpoint(self):
        config = FleetConfig.from_env(env(
            API_ENDPOINT=None,
            PROVER1_ADDRESS=None,
            PROVER2_ADDRESS=None,
            PROVER1_DEMAND_URL="http://one.test/assigned",
            PROVER2_DEMAND_URL="http://two.test/assigned",
        ))
        assert config.demand_endpoints[Workload.PROVER_1].url == "http://one.test/assigned"
        assert config.demand_endpoints[Workload.PROVER_1].params is None

    def test_single_discrete_url_falls_back(self):
        config = FleetConfig.from_env(env(PROVER1_DEMAND_URL="http://one.test/assigned"))
        assert config.demand_endpoints[Workload.PROVER_1].prover_address == "0xaaa"


class TestDefaults:

    def test_defaults(self):
        config = FleetConfig.from_env(env())
        assert config.ssh_user == "user01"
        assert config.poll_interval_s == 5.0
        assert config.demand_timeout_s == 10.0

    def test_overrides(self):
        config = FleetConfig.from_env(env(SSH_USER="ops", POLL_INTERVAL_S="2.5"))
        assert config.ssh_user == "ops"
        assert config.poll_interval_s == 2.5

    @pytest.mark.parametrize("value", ["0", "-1", "soon", "inf", "-inf", "nan"])
    def test_bad_interval(self, value):
        with pytest.raises(ConfigError, match="POLL_INTERVAL_S"):
            FleetConfig.from_env(env(POLL_INTERVAL_S=value))

    @pytest.mark.parametrize("value", ["inf", "nan"])
    def test_non_finite_timeout(self, value):
        with pytest.raises(ConfigError, match="DEMAND_TIMEOUT_S"):
            FleetConfig.from_env(env(DEMAND_TIMEOUT_S=value))

    def test_to_dict_hides_passwords(self):
        config = FleetConfig.from_env(env(SSH_PASSWORDS="p1,p2,p3"))
        summary = config.to_dict()
        assert "p1" not in str(summary)
        assert summary["nodes"][0] == {"address": "10.0.0.1", "auth": "password"}
