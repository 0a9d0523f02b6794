import json

import pytest

from cocos.attestation_config import CheckConfig, Policy, RootOfTrust, parse_config

EXAMPLE_CONFIG = {
    "rootOfTrust": {
        "product": "test_product",
        "cabundlePaths": ["test_cabundlePaths"],
        "cabundles": ["test_Cabundles"],
        "checkCrl": True,
        "disallowNetwork": True,
    },
    "policy": {
        "minimumGuestSvn": 1,
        "policy": "1",
        "familyId": "AQIDBAUGBwgJCgsMDQ4PEA==",
        "imageId": "AQIDBAUGBwgJCgsMDQ4PEA==",
        "vmpl": 0,
        "minimumTcb": "1",
        "minimumLaunchTcb": "1",
        "platformInfo": "1",
        "requireAuthorKey": True,
        "reportData": "J+60aXs8btm8VcGgaJYURGeNCu0FIyWMFXQ7ZUlJDC0FJGJizJsOzDIXgQ75UtPC+Zqe0A3dvnnf5VEeQ61RTg==",
        "measurement": "8s78ewoX7Xkfy1qsgVnkZwLDotD768Nqt6qTL5wtQOxHsLczipKM6bhDmWiHLdP4",
        "hostData": "GSvLKpfu59Y9QOF6vhq0vQsOIvb4+5O/UOHLGLBTkdw=",
        "reportId": "GSvLKpfu59Y9QOF6vhq0vQsOIvb4+5O/UOHLGLBTkdw=",
        "reportIdMa": "GSvLKpfu59Y9QOF6vhq0vQsOIvb4+5O/UOHLGLBTkdw=",
        "chipId": "J+60aXs8btm8VcGgaJYURGeNCu0FIyWMFXQ7ZUlJDC0FJGJizJsOzDIXgQ75UtPC+Zqe0A3dvnnf5VEeQ61RTg==",
        "minimumBuild": 1,
        "minimumVersion": "0.90",
        "permitProvisionalFirmware": True,
        "requireIdBlock": True,
        "trustedAuthorKeys": ["GSvLKpfu59Y9QOF6vhq0vQsOIvb4+5O/UOHLGLBTkdw="],
        "trustedAuthorKeyHashes": ["GSvLKpfu59Y9QOF6vhq0vQsOIvb4+5O/UOHLGLBTkdw="],
        "trustedIdKeys": ["GSvLKpfu59Y9QOF6vhq0vQsOIvb4+5O/UOHLGLBTkdw="],
        "trustedIdKeyHashes": ["GSvLKpfu59Y9QOF6vhq0vQsOIvb4+5O/UOHLGLBTkdw="],
        "product": {"name": "SEV_PRODUCT_MILAN", "stepping": 1, "machineStepping": 1},
    },
}


def test_parse_config_empty_gives_defaults():
    config = parse_config("")
    assert config.root_of_trust == RootOfTrust()
    assert config.policy == Policy()


def test_parse_config_sets_fields():
    config = parse_config('{"rootOfTrust":{"product":"test_product"},"policy":{"minimumGuestSvn":1}}')
    assert config.root_of_trust.product == "test_product"
    assert config.policy.minimum_guest_svn == 1


def test_parse_config_invalid_json():
    with pytest.raises(ValueError):
        parse_config('{"invalid_json"')


def test_parse_example_config():
    config = parse_config(json.dumps(EXAMPLE_CONFIG))
    assert config.root_of_trust.cabundle_paths == ["test_cabundlePaths"]
    assert config.root_of_trust.check_crl is True
    assert config.root_of_trust.disallow_network is True
    policy = config.policy
    assert policy.policy == 1
    assert policy.family_id == bytes(range(1, 17))
    assert policy.vmpl == 0
    assert policy.platform_info == 1
    assert policy.minimum_version == "0.90"
    assert len(policy.report_data) == 64
    assert len(policy.measurement) == 48
    assert len(policy.host_data) == 32
    assert policy.product_name == "SEV_PRODUCT_MILAN"
    assert policy.product_stepping == 1
    assert policy.machine_stepping == 1
    assert len(policy.trusted_id_key_hashes) == 1


def test_round_trip_example():
    config = parse_config(json.dumps(EXAMPLE_CONFIG))
    again = CheckConfig.from_json(config.to_json())
    assert again == config


def test_default_to_json():
    assert CheckConfig().to_json() == '{"rootOfTrust":{},"policy":{}}'


def test_uint64_written_as_string_and_bytes_as_base64():
    config = CheckConfig(policy=Policy(policy=0x30000, family_id=bytes(range(1, 17)), vmpl=0))
    data = json.loads(config.to_json())
    assert data["policy"] == {
        "policy": "196608",
        "familyId": "AQIDBAUGBwgJCgsMDQ4PEA==",
        "vmpl": 0,
    }


def test_snake_case_names_accepted():
    config = CheckConfig.from_json('{"root_of_trust": {"product_line": "Milan"}}')
    assert config.root_of_trust.product_line == "Milan"


def test_product_number_and_url_safe_base64():
    config = CheckConfig.from_json(
        '{"policy": {"product": {"name": 2}, "hostData": "-_8"}}'
    )
    assert config.policy.product_name == "SEV_PRODUCT_GENOA"
    assert config.policy.host_data == b"\xfb\xff"


@pytest.mark.parametrize(
    "text",
    [
        '{"policy": {"unknownField": 1}}',
        '{"policy": {"minimumGuestSvn": 4294967296}}',
        '{"policy": {"minimumGuestSvn": -1}}',
        '{"policy": {"requireIdBlock": "yes"}}',
        '{"policy": {"hostData": "***"}}',
        '{"policy": {"product": {"name": "SEV_PRODUCT_OTHER"}}}',
        '{"other": {}}',
        "[]",
    ],
)
def test_invalid_configs_rejected(text):
    with pytest.raises(ValueError):
        CheckConfig.from_json(text)


def test_null_sections_become_empty():
    config = CheckConfig.from_json('{"rootOfTrust": null, "policy": null}')
    assert config == CheckConfig()