"""
Use Cases Layer (Business Operations)

Structure
---------
usecases/
├── audit/      # Tenant-scoped audit trail view
├── bootstrap/  # Platform bootstrap and tenant provisioning
├── incident/   # Incident creation, CNIL lifecycle, deadline checks
├── security/   # Failed / successful login tracking
└── users/      # Tenant user reads and suspension

Import from subpackages:

    from compliance_core.application.usecases.bootstrap import BootstrapPlatformUseCase
"""
