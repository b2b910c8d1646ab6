import oracledb

from product_migrator.cloning.classification import classification_exists
from product_migrator.cloning.column_catalog import ColumnCatalog, sanitize_identifier
from product_migrator.cloning.exceptions import (
    IdentityAllocationError,
    InvalidClassificationError,
    PredecessorNotFoundError,
)
from product_migrator.cloning.models import Classification
from product_migrator.session.context_guard import SessionContextGuard

# Identity, classification, registration date and the audit columns filled
# by the PRODUTO trigger.
PRODUCT_EXCLUDED = (
    "CD_PRODUTO",
    "CD_ESPECIE",
    "CD_CLASSE",
    "CD_SUB_CLA",
    "DT_CADASTRO",
    "CD_USUARIO_INC",
    "DT_INC_USUARIO",
    "CD_USUARIO_ALT",
    "DT_ALT_USUARIO",
)
# New units must never inherit a scannable barcode.
UNIT_EXCLUDED = ("CD_UNI_PRO", "CD_PRODUTO", "CD_CODIGO_DE_BARRAS")
TENANT_BINDING_EXCLUDED = ("CD_PRODUTO",)


class CloneEngine:
    """Clones a product with its units and tenant bindings under a new classification.

    Never commits or rolls back: the caller owns the transaction.
    """

    def __init__(
        self,
        guard: SessionContextGuard,
        tenant_id: int,
        owner: str = "DBAMV",
        only_operating_tenant: bool = True,
    ) -> None:
        self._guard = guard
        self._tenant_id = tenant_id
        self._owner = sanitize_identifier(owner)
        self._only_operating_tenant = only_operating_tenant

    def clone_entity(
        self,
        conn: oracledb.Connection,
        predecessor_id: int,
        classification: Classification,
        catalog: ColumnCatalog,
    ) -> int:
        """Clone ``predecessor_id`` and deactivate it. Returns the new product id.

        Raises:
            SessionContextError: the session cannot be pinned to the tenant.
            InvalidClassificationError: the triple is not in SUB_CLAS.
            IdentityAllocationError: the sequence returned nothing.
            PredecessorNotFoundError: the predecessor row does not exist.
            CloneError: column metadata could not be resolved.
        """
        self._guard.ensure_context(conn, self._tenant_id)

        with conn.cursor() as cur:
            if not classification_exists(cur, classification, self._owner):
                raise InvalidClassificationError(
                    f"Classification not found in SUB_CLAS: {classification}"
                )
            new_id = self._allocate_identity(cur)

        self._insert_product(conn, catalog, new_id, predecessor_id, classification)
        self._insert_units(conn, catalog, new_id, predecessor_id)
        self._insert_tenant_bindings(conn, catalog, new_id, predecessor_id)

        # The deactivation fires store triggers that read the session tenant.
        self._guard.ensure_context(conn, self._tenant_id)
        self._deactivate_predecessor(conn, predecessor_id)
        return new_id

    def _allocate_identity(self, cur: oracledb.Cursor) -> int:
        cur.execute(f"SELECT {self._owner}.seq_produto.NEXTVAL FROM dual")
        row = cur.fetchone()
        if row is None or not row[0]:
            raise IdentityAllocationError("SEQ_PRODUTO.NEXTVAL returned no value")
        return int(row[0])

    def _insert_product(
        self,
        conn: oracledb.Connection,
        catalog: ColumnCatalog,
        new_id: int,
        predecessor_id: int,
        classification: Classification,
    ) -> None:
        columns = ", ".join(catalog.clone_columns(conn, "PRODUTO", PRODUCT_EXCLUDED))
        with conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._owner}.produto
                    (CD_PRODUTO, CD_ESPECIE, CD_CLASSE, CD_SUB_CLA, DT_CADASTRO, {columns})
                SELECT :p_novo_id, :p_especie, :p_classe, :p_sub_cla, SYSDATE, {columns}
                  FROM {self._owner}.produto
                 WHERE cd_produto = :p_antecessor
                """,
                {
                    "p_novo_id": new_id,
                    "p_especie": classification.species_code,
                    "p_classe": classification.class_code,
                    "p_sub_cla": classification.subclass_code,
                    "p_antecessor": predecessor_id,
                },
            )
            if cur.rowcount != 1:
                raise PredecessorNotFoundError(
                    f"Predecessor product not found: CD_PRODUTO={predecessor_id}"
                )

    def _insert_units(
        self,
        conn: oracledb.Connection,
        catalog: ColumnCatalog,
        new_id: int,
        predecessor_id: int,
    ) -> None:
        columns = ", ".join(catalog.clone_columns(conn, "UNI_PRO", UNIT_EXCLUDED))
        with conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {self._owner}.uni_pro
                    (CD_UNI_PRO, CD_PRODUTO, CD_CODIGO_DE_BARRAS, {columns})
                SELECT {self._owner}.seq_uni_pro.NEXTVAL, :p_novo_id, NULL, {columns}
                  FROM {self._owner}.uni_pro
                 WHERE cd_produto = :p_antecessor
                """,
                {"p_novo_id": new_id, "p_antecessor": predecessor_id},
            )

    def _insert_tenant_bindings(
        self,
        conn: oracledb.Connection,
        catalog: ColumnCatalog,
        new_id: int,
        predecessor_id: int,
    ) -> None:
        columns = ", ".join(
            catalog.clone_columns(conn, "EMPRESA_PRODUTO", TENANT_BINDING_EXCLUDED)
        )
        sql = f"""
            INSERT INTO {self._owner}.empresa_produto (CD_PRODUTO, {columns})
            SELECT :p_novo_id, {columns}
              FROM {self._owner}.empresa_produto
             WHERE cd_produto = :p_antecessor
        """
        params: dict[str, int] = {"p_novo_id": new_id, "p_antecessor": predecessor_id}
        if self._only_operating_tenant:
            sql += "   AND cd_multi_empresa = :p_emp\n"
            params["p_emp"] = self._tenant_id
        with conn.cursor() as cur:
            cur.execute(sql, params)

    def _deactivate_predecessor(self, conn: oracledb.Connection, predecessor_id: int) -> None:
        with conn.cursor() as cur:
            cur.execute(
                f"""
                UPDATE {self._owner}.produto
                   SET sn_movimentacao = 'N',
                       sn_bloqueio_de_compra = 'S'
                 WHERE cd_produto = :p_antecessor
                """,
                {"p_antecessor": predecessor_id},
            )
            cur.execute(
                f"""
                UPDATE {self._owner}.empresa_produto
                   SET sn_movimentacao = 'N',
                       sn_bloqueio_de_compra = 'S'
                 WHERE cd_produto = :p_antecessor
                   AND cd_multi_empresa = :p_emp
                """,
                {"p_antecessor": predecessor_id, "p_emp": self._tenant_id},
            )
