"""
BeamDAO Package

Governance token, migrator and timelock-gated DAO, with the tooling that
deploys and wires them. Core imports are lazily loaded; for direct access
import from submodules:

    from beamdao.chain import Chain
    from beamdao.contracts import BeamToken, Migrator
    from beamdao.deploy import deploy_beam_dao, set_dao_permissions
"""

__version__ = "0.1.0"


# Lazy imports keep `beamdao.constants` / `beamdao.logger` usable on their own
def __getattr__(name):
    """Lazy module loading."""
    if name == 'Chain':
        from .chain import Chain
        return Chain
    elif name == 'BeamToken':
        from .contracts import BeamToken
        return BeamToken
    elif name == 'Migrator':
        from .contracts import Migrator
        return Migrator
    raise AttributeError(f"module 'beamdao' has no attribute {name!r}")

__all__ = ['Chain', 'BeamToken', 'Migrator', '__version__']
