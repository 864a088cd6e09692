import json

import pytest
import requests

SERVER_URL = 'https://my.blackduck.system'
VERSION_URL = f"{SERVER_URL}/api/projects/5ca86e11/versions/a6c94786"

AUTH_CONTENT = {'bearerToken': 'bearerTestToken', 'expiresInMilliseconds': 7199997}

PROJECT_CONTENT = {
    'totalCount': 1,
    'items': [
        {
            'name': 'SHC-PiperTest',
            '_meta': {
                'href': f"{SERVER_URL}/api/projects/5ca86e11-1983-4e7b-97d4-eb1a0aeffbbf",
                'links': [
                    {
                        'rel': 'versions',
                        'href': f"{SERVER_URL}/api/projects/5ca86e11-1983-4e7b-97d4-eb1a0aeffbbf/versions",
                    },
                ],
            },
        },
    ],
}

PROJECT_VERSION_CONTENT = {
    'totalCount': 1,
    'items': [
        {
            'versionName': '1.0',
            '_meta': {
                'href': f"{SERVER_URL}/api/projects/5ca86e11-1983-4e7b-97d4-eb1a0aeffbbf/versions/a6c94786",
                'links': [
                    {'rel': 'components', 'href': f"{VERSION_URL}/components"},
                    {'rel': 'hierarchical-components', 'href': f"{VERSION_URL}/hierarchical-components"},
                    {'rel': 'vulnerable-components', 'href': f"{VERSION_URL}/vunlerable-bom-components"},
                    {'rel': 'policy-status', 'href': f"{VERSION_URL}/policy-status"},
                ],
            },
        },
    ],
}

COMPONENTS_CONTENT = {
    'totalCount': 3,
    'items': [
        {
            'componentName': 'Spring Framework',
            'componentVersionName': '5.3.9',
            'primaryLanguage': 'JAVA',
            'policyStatus': 'IN_VIOLATION',
        },
        {
            'componentName': 'Apache Tomcat',
            'componentVersionName': '9.0.52',
            'primaryLanguage': 'JAVA',
            'policyStatus': 'IN_VIOLATION',
        },
        {
            'componentName': 'Apache Log4j',
            'componentVersionName': '4.5.16',
            'policyStatus': 'UNKNOWN',
        },
    ],
}

HIERARCHICAL_COMPONENTS_CONTENT = {
    'totalCount': 3,
    'items': [
        {
            'componentName': 'Spring Framework',
            'componentVersionName': '5.3.9',
            'origins': [{'externalNamespace': 'Maven', 'externalId': 'spring:spring-web:5.3.9'}],
            'policyStatus': 'IN_VIOLATION',
        },
        {
            'componentName': 'Apache Tomcat',
            'componentVersionName': '9.0.52',
            'origins': [{'externalNamespace': 'Maven', 'externalId': 'apache:tomcat:9.0.52'}],
            'policyStatus': 'IN_VIOLATION',
        },
        {
            'componentName': 'Apache Log4j',
            'componentVersionName': '4.5.16',
            'origins': [{'externalNamespace': 'Maven', 'externalId': 'apache:log4j:4.5.16'}],
            'policyStatus': 'UNKNOWN',
        },
    ],
}


def _vulnerability(component, version, name, score, severity, status='IGNORED'):
    return {
        'componentName': component,
        'componentVersionName': version,
        'vulnerabilityWithRemediation': {
            'vulnerabilityName': name,
            'baseScore': score,
            'overallScore': score,
            'severity': severity,
            'remediationStatus': status,
            'description': 'description',
        },
    }


VULNERABILITIES_CONTENT = {
    'totalCount': 3,
    'items': [
        _vulnerability('Spring Framework', '5.3.9', 'BDSA-2019-2021', 7.5, 'HIGH'),
        _vulnerability('Apache Log4j', '4.5.16', 'BDSA-2020-4711', 7.5, 'HIGH'),
        _vulnerability('Apache Log4j', '4.5.16', 'BDSA-2020-4712', 4.5, 'MEDIUM'),
    ],
}

POLICY_STATUS_CONTENT = {
    'overallStatus': 'IN_VIOLATION',
    'componentVersionPolicyViolationDetails': {
        'name': 'IN_VIOLATION',
        'severityLevels': [{'name': 'BLOCKER', 'value': 1}, {'name': 'CRITICAL', 'value': 1}],
    },
}


def blackduck_responses() -> dict[str, dict]:
    return {
        f"{SERVER_URL}/api/tokens/authenticate": AUTH_CONTENT,
        f"{SERVER_URL}/api/projects?q=name%3ASHC-PiperTest": PROJECT_CONTENT,
        f"{SERVER_URL}/api/projects/5ca86e11-1983-4e7b-97d4-eb1a0aeffbbf/versions?limit=100&offset=0":
            PROJECT_VERSION_CONTENT,
        f"{VERSION_URL}/components?limit=999&offset=0": COMPONENTS_CONTENT,
        f"{VERSION_URL}/vunlerable-bom-components?limit=999&offset=0": VULNERABILITIES_CONTENT,
        f"{VERSION_URL}/components?filter=policyCategory%3Alicense&limit=999&offset=0": COMPONENTS_CONTENT,
        f"{VERSION_URL}/hierarchical-components?limit=999&offset=0": HIERARCHICAL_COMPONENTS_CONTENT,
        f"{VERSION_URL}/policy-status": POLICY_STATUS_CONTENT,
    }


class FakeSession:
    """Serves canned JSON bodies keyed by the fully encoded request URL."""

    def __init__(self, responses: dict[str, dict], status_code: int = 200):
        self.responses = responses
        self.status_code = status_code
        self.requests = []

    def request(self, method, url, params=None, headers=None, timeout=None, **kwargs):
        full_url = requests.Request(method, url, params=params).prepare().url
        self.requests.append((method, full_url, headers or {}))

        response = requests.Response()
        response.url = full_url
        response.encoding = 'utf-8'
        if full_url not in self.responses:
            response.status_code = 404
            response._content = b'{}'
            return response
        response.status_code = self.status_code
        response._content = json.dumps(self.responses[full_url]).encode('utf-8')
        return response


@pytest.fixture
def fake_session():
    return FakeSession(blackduck_responses())
