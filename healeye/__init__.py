"""
HEAL-EYE — Health surge analysis workflow

Public surface:
  - healeye.workflow: HealEyeWorkflow, WorkflowRequest, run_workflow
  - healeye.config: HealEyeConfig, load_config
  - healeye.errors: AppError and subclasses, envelope constructors
  - healeye.retry: with_retries, is_overloaded_error
"""

from healeye.errors import (
    AppError, AuthError, ErrorKind, ExternalServiceError, ValidationError,
    WorkflowStepError, error_envelope, success_envelope,
)
from healeye.retry import RetryPolicy, is_overloaded_error, with_retries
from healeye.config import HealEyeConfig, load_config
from healeye.workflow import HealEyeWorkflow, WorkflowRequest, run_workflow

__version__ = "0.1.0"
