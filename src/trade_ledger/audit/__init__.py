"""AI trade audits and the strategies they are measured against.

Key components
--------------
Strategy                A named trading plan with explicit rules
Audit                   One completed AI review (newest first in storage)
AuditParameters         What an audit covered
AuditProvider           Protocol for the async assessment call
AnthropicAuditProvider  Claude Messages API implementation
run_audit               Await the provider and build the Audit record
"""

from .models import Audit, AuditParameters, Strategy
from .provider import AnthropicAuditProvider, AuditProvider, build_audit_prompt
from .service import run_audit

__all__ = [
    "Audit",
    "AuditParameters",
    "Strategy",
    "AuditProvider",
    "AnthropicAuditProvider",
    "build_audit_prompt",
    "run_audit",
]
