import pytest
from fastapi.testclient import TestClient

from code_runner import main
from code_runner.executor import CodeExecutor
from code_runner.languages import ASSERTION_MARKER
from code_runner.process import TIMED_OUT, ProcessResult
from code_runner.schemas import ExecutionOutcome, TestResult as Result

from conftest import FakeLauncher


class StubExecutor:

    def __init__(self, outcome=None, error=None):
        self.outcome = outcome
        self.error = error
        self.requests = []

    async def execute(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.outcome


@pytest.fixture
def client():
    return TestClient(main.app)


def use(monkeypatch, executor):
    monkeypatch.setattr(main, 'executor', executor)
    return executor


class TestRequestValidation:

    def test_invalid_json(self, client):
        resp = client.post('/execute', content='{not json', headers={'Content-Type': 'application/json'})

        assert resp.status_code == 400
        assert resp.json() == {'success': False, 'output': '', 'error': 'Invalid JSON body'}

    @pytest.mark.parametrize('body', [
        {'code': 'print(1)'},
        {'language': 'swift'},
        {'language': 'swift', 'code': ''},
        ['swift', 'print(1)'],
    ])
    def test_missing_language_or_code(self, client, body):
        resp = client.post('/execute', json=body)

        assert resp.status_code == 400
        assert resp.json()['error'] == 'Missing language or code'

    def test_unsupported_language(self, client, monkeypatch):
        stub = use(monkeypatch, StubExecutor())

        resp = client.post('/execute', json={'language': 'ruby', 'code': 'puts 1'})

        assert resp.status_code == 400
        assert resp.json() == {
            'success': False,
            'output': '',
            'error': 'Unsupported language for server execution',
        }
        assert stub.requests == []

    def test_invalid_test_cases(self, client, monkeypatch):
        use(monkeypatch, StubExecutor())

        resp = client.post('/execute', json={'language': 'rust', 'code': 'fn main() {}', 'testCases': 'all'})

        assert resp.status_code == 400
        assert resp.json()['error'] == 'Invalid request body'


class TestExecuteEndpoint:

    def test_success(self, client, monkeypatch):
        stub = use(monkeypatch, StubExecutor(ExecutionOutcome(output='hello\n', success=True)))

        resp = client.post('/execute', json={'language': 'swift', 'code': 'print("hello")'})

        assert resp.status_code == 200
        assert resp.json() == {'output': 'hello\n', 'success': True}
        assert stub.requests[0].language == 'swift'
        assert stub.requests[0].test_cases is None

    def test_api_prefix(self, client, monkeypatch):
        use(monkeypatch, StubExecutor(ExecutionOutcome(output='', success=True)))

        resp = client.post('/api/execute', json={'language': 'kotlin', 'code': 'fun main() {}'})

        assert resp.status_code == 200

    def test_test_cases_parsed(self, client, monkeypatch):
        outcome = ExecutionOutcome(
            output='result: 42\n',
            success=True,
            test_results=[Result(description='answer', passed=True)],
        )
        stub = use(monkeypatch, StubExecutor(outcome))

        resp = client.post('/execute', json={
            'language': 'rust',
            'code': 'fn main() {}',
            'testCases': [{'description': 'answer', 'expectedOutput': '42'}],
        })

        assert resp.status_code == 200
        assert resp.json()['testResults'] == [{'description': 'answer', 'passed': True}]
        assert stub.requests[0].test_cases[0].expected_output == '42'

    def test_code_failure_is_400(self, client, monkeypatch):
        use(monkeypatch, StubExecutor(ExecutionOutcome(output='error: x', success=False, error='Compilation error')))

        resp = client.post('/execute', json={'language': 'rust', 'code': 'fn main() {'})

        assert resp.status_code == 400
        assert resp.json() == {'output': 'error: x', 'success': False, 'error': 'Compilation error'}

    def test_unexpected_error_is_500(self, client, monkeypatch):
        use(monkeypatch, StubExecutor(error=RuntimeError('disk full')))

        resp = client.post('/execute', json={'language': 'rust', 'code': 'fn main() {}'})

        assert resp.status_code == 500
        assert resp.json() == {'success': False, 'output': '', 'error': 'disk full'}

    def test_end_to_end_timeout(self, client, monkeypatch, settings):
        use(monkeypatch, CodeExecutor(settings, launcher=FakeLauncher(TIMED_OUT)))

        resp = client.post('/execute', json={'language': 'swift', 'code': 'while true {}'})

        assert resp.status_code == 400
        assert resp.json() == {'output': '', 'success': False, 'error': 'Execution timed out'}

    def test_end_to_end_tests(self, client, monkeypatch, settings):
        launcher = FakeLauncher(
            ProcessResult(exit_code=0, stdout='result: 42\n'),
            ProcessResult(exit_code=0, stdout=f'result: 42\n{ASSERTION_MARKER}\nfalse\n'),
        )
        use(monkeypatch, CodeExecutor(settings, launcher=launcher))

        resp = client.post('/execute', json={
            'language': 'typescript',
            'code': 'const answer = 42; console.log(`result: ${answer}`);',
            'testCases': [
                {'description': 'is 43', 'assertion': 'answer === 43'},
                {'description': 'prints', 'expectedOutput': '42'},
                {'description': 'empty'},
            ],
        })

        assert resp.status_code == 200
        assert resp.json()['testResults'] == [
            {'description': 'is 43', 'passed': False, 'output': 'false'},
            {'description': 'prints', 'passed': True},
            {'description': 'empty', 'passed': False, 'error': 'No assertion defined'},
        ]


    def test_unencodable_code_is_client_error(self, client, monkeypatch, settings):
        use(monkeypatch, CodeExecutor(settings, launcher=FakeLauncher()))

        resp = client.post(
            '/execute',
            content='{"language": "swift", "code": "print(\\"\\ud800\\")"}',
            headers={'Content-Type': 'application/json'},
        )

        assert resp.status_code == 400
        assert resp.json()['success'] is False


class TestHealth:

    def test_health(self, client):
        resp = client.get('/health')

        assert resp.status_code == 200
        assert resp.json()['status'] == 'healthy'
        assert resp.json()['languages'] == ['swift', 'typescript', 'rust', 'kotlin']

    def test_cors_preflight(self, client):
        resp = client.options('/execute', headers={
            'Origin': 'http://localhost:4200',
            'Access-Control-Request-Method': 'POST',
        })

        assert resp.status_code == 200
        assert resp.headers['access-control-allow-origin'] == '*'
