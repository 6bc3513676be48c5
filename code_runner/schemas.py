from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class TestCase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    description: str = ''
    assertion: Optional[str] = None
    expected_output: Optional[str] = Field(default=None, alias='expectedOutput')


class ExecutionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    language: str
    code: str
    test_cases: Optional[List[TestCase]] = Field(default=None, alias='testCases')


class TestResult(BaseModel):
    description: str
    passed: bool
    output: Optional[str] = None
    error: Optional[str] = None


class ExecutionOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    output: str = ''
    success: bool
    error: Optional[str] = None
    test_results: Optional[List[TestResult]] = Field(default=None, alias='testResults')

    def to_response(self) -> Dict[str, Any]:
        # absent optional fields are left out of the payload instead of sent as null
        return self.model_dump(by_alias=True, exclude_none=True)
