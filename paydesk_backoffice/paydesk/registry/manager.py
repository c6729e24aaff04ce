"""
Component Master maintenance: create, update and delete earnings, deduction
and employer-contribution components.
"""
from pathlib import Path
from typing import Dict, List, Any, Optional, Union

from ..core.audit import AuditLogger
from ..core.exceptions import RecordNotFoundError, ValidationError
from ..core.repositories import ComponentsRepository
from ..core.utils import setup_logging, to_decimal
from .components import CalculationBasis, ComponentKind, SpecialRuleKind

class ComponentMasterManager:
    """CRUD over one tenant's component collections."""

    def __init__(self, tenant_id: str, data_dir: Optional[Union[str, Path]] = None):
        self.tenant_id = tenant_id
        self.data_dir = data_dir
        self.audit_logger = AuditLogger(tenant_id, data_dir)
        self.logger = setup_logging(tenant_id)

    def _repo(self, collection: Union[str, ComponentKind]) -> ComponentsRepository:
        collection = ComponentKind(collection).value
        return ComponentsRepository(self.tenant_id, collection, self.data_dir)

    def _clean(self, data: Dict[str, Any], kind: ComponentKind) -> Dict[str, Any]:
        issues = []
        name = str(data.get('name') or '').strip()
        if not name:
            issues.append({'field': 'name', 'reason': 'required'})

        basis = CalculationBasis.parse(data.get('based_on'))
        if data.get('based_on') not in (None, '') and basis is None:
            issues.append({'field': 'based_on', 'value': data.get('based_on'), 'reason': 'must be Basic, Gross or Fixed'})
        if basis is CalculationBasis.FIXED and kind is not ComponentKind.EARNING:
            issues.append({'field': 'based_on', 'value': basis.value, 'reason': 'Fixed is only supported for earnings'})

        percentage = to_decimal(data.get('calculation_percentage'), default=None)
        max_value = to_decimal(data.get('max_calculated_value'), default=None)
        for field_name, value, raw in (
            ('calculation_percentage', percentage, data.get('calculation_percentage')),
            ('max_calculated_value', max_value, data.get('max_calculated_value')),
        ):
            if raw not in (None, '') and (value is None or value < 0):
                issues.append({'field': field_name, 'value': raw, 'reason': 'must be a number >= 0'})

        special = None
        if data.get('special_rule') not in (None, ''):
            special = SpecialRuleKind.parse(data['special_rule'])
            if special is None:
                issues.append({'field': 'special_rule', 'value': data['special_rule'], 'reason': 'unknown rule'})

        if issues:
            raise ValidationError(f"Invalid {kind.value} component", issues)

        row = {
            'name': name,
            'based_on': basis.value if basis else None,
            'calculation_percentage': float(percentage or 0),
            'max_calculated_value': float(max_value or 0),
        }
        if special is not None:
            row['special_rule'] = special.value
        return row

    def list_components(self, collection: Union[str, ComponentKind]) -> List[Dict[str, Any]]:
        return self._repo(collection).load_data()

    def create_component(self, collection: Union[str, ComponentKind], data: Dict[str, Any], user_id: Optional[str] = None) -> Dict[str, Any]:
        """Create a component. Names are unique per collection, ignoring case and surrounding spaces."""
        kind = ComponentKind(collection)
        repo = self._repo(kind)
        row = self._clean(data, kind)
        if repo.find_by_name(row['name']) is not None:
            raise ValidationError(
                f"A {kind.value} component named '{row['name']}' already exists",
                [{'field': 'name', 'value': row['name'], 'reason': 'duplicate'}]
            )
        repo.bulk_upsert([row])
        created = repo.find_by_name(row['name'])
        self.audit_logger.log_data_change(kind.value, 'create', str(created['id']), row, user_id)
        self.logger.info("Component created in %s: %s", kind.value, row['name'])
        return created

    def update_component(self, collection: Union[str, ComponentKind], component_id: Any, data: Dict[str, Any], user_id: Optional[str] = None) -> Dict[str, Any]:
        kind = ComponentKind(collection)
        repo = self._repo(kind)
        current = repo.find_by_key('id', component_id)
        if current is None:
            raise RecordNotFoundError(kind.value, component_id)

        row = self._clean({**current, **data}, kind)
        other = repo.find_by_name(row['name'])
        if other is not None and other.get('id') != component_id:
            raise ValidationError(
                f"A {kind.value} component named '{row['name']}' already exists",
                [{'field': 'name', 'value': row['name'], 'reason': 'duplicate'}]
            )
        row['id'] = component_id
        repo.bulk_upsert([row])
        self.audit_logger.log_data_change(kind.value, 'update', str(component_id), row, user_id)
        return repo.find_by_key('id', component_id)

    def delete_component(self, collection: Union[str, ComponentKind], component_id: Any, user_id: Optional[str] = None) -> bool:
        kind = ComponentKind(collection)
        if not self._repo(kind).delete(component_id):
            raise RecordNotFoundError(kind.value, component_id)
        self.audit_logger.log_data_change(kind.value, 'delete', str(component_id), {}, user_id)
        self.logger.info("Component %s deleted from %s", component_id, kind.value)
        return True

