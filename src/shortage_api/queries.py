"""SQL texts for the read views. Placeholders use SQLAlchemy ``:name`` style."""

INCIDENT_COLUMNS = """
    p.name AS product,
    p.accented_name AS accented_product,
    p.id AS product_id,
    i.status,
    i.start_date,
    i.end_date,
    i.calculated_end_date,
    p.cis_codes,
    STRING_AGG(DISTINCT m.name, ', ' ORDER BY m.name) AS molecule,
    MIN(m.id) AS molecule_id,
    p.atc_code,
    MAX(ca.code || ' - ' || ca.description) AS classe_atc
"""

INCIDENT_JOINS = """
    FROM incidents i
    JOIN produits p ON p.id = i.product_id
    LEFT JOIN produits_molecules pm ON pm.produit_id = p.id
    LEFT JOIN molecules m ON m.id = pm.molecule_id
    LEFT JOIN classes_atc ca ON ca.code = LEFT(p.atc_code, 1)
"""

INCIDENT_GROUP_BY = """
    GROUP BY i.id, p.id, p.name, p.accented_name, p.cis_codes, p.atc_code,
             i.status, i.start_date, i.end_date, i.calculated_end_date
"""

GET_INCIDENTS = f"""
    WITH max_date AS (
        SELECT MAX(calculated_end_date) AS max_date FROM incidents
    )
    SELECT {INCIDENT_COLUMNS}
    {INCIDENT_JOINS}
    CROSS JOIN max_date md
    WHERE i.calculated_end_date >= (md.max_date - INTERVAL '1 month' * :months_to_show)
    /* ADDITIONAL_FILTERS */
    {INCIDENT_GROUP_BY}
    ORDER BY p.name, i.start_date
"""

GET_INCIDENTS_BY_PRODUCT_ID = f"""
    SELECT {INCIDENT_COLUMNS}
    {INCIDENT_JOINS}
    WHERE p.id = :product_id
    {INCIDENT_GROUP_BY}
    ORDER BY i.start_date
"""

GET_PRODUCT_BY_NAME = """
    SELECT p.id, p.name, p.accented_name, p.atc_code, p.cis_codes
    FROM produits p
    WHERE LOWER(p.name) = :name OR LOWER(p.accented_name) = :name
    LIMIT 1
"""

GET_INCIDENTS_BY_PRODUCT = """
    SELECT i.id, i.status, i.start_date, i.end_date, i.calculated_end_date
    FROM incidents i
    WHERE i.product_id = :product_id
    ORDER BY i.start_date
"""

GET_CIS_NAMES = """
    SELECT code_cis, denomination_medicament
    FROM dbpm.cis_bdpm
    WHERE code_cis = ANY(:codes)
"""

GET_DENOMINATION_BY_CIS = """
    SELECT denomination_medicament
    FROM dbpm.cis_bdpm
    WHERE code_cis = :code_cis
"""

GET_MAX_REPORT_DATE = """
    SELECT MAX(calculated_end_date) AS max_report_date FROM incidents
"""

SEARCH_PRODUCTS = """
    WITH max_date AS (
        SELECT MAX(calculated_end_date) AS max_date FROM incidents
    ),
    search_results AS (
        SELECT DISTINCT
            p.id AS product_id,
            p.name AS product,
            p.accented_name AS accented_product,
            MAX(i.calculated_end_date) AS latest_end_date,
            MAX(i.start_date) AS latest_start_date,
            STRING_AGG(DISTINCT i.status, ', ' ORDER BY i.status) AS statuses,
            bool_or(i.status = 'Arret' AND i.end_date IS NULL) AS is_discontinued,
            bool_or(i.calculated_end_date >= (md.max_date - INTERVAL '1 month' * :months_to_show))
                AS in_current_filter
        FROM produits p
        LEFT JOIN incidents i ON p.id = i.product_id
        LEFT JOIN produits_molecules pm ON p.id = pm.produit_id
        LEFT JOIN molecules m ON pm.molecule_id = m.id
        CROSS JOIN max_date md
        WHERE (p.name ILIKE :pattern OR p.accented_name ILIKE :pattern OR m.name ILIKE :pattern)
        GROUP BY p.id, p.name, p.accented_name
    ),
    with_current_status AS (
        SELECT *,
            CASE
                WHEN is_discontinued THEN 'Arret'
                WHEN statuses LIKE '%Rupture%' AND in_current_filter THEN 'Rupture'
                WHEN statuses LIKE '%Tension%' AND in_current_filter THEN 'Tension'
                ELSE 'Disponible'
            END AS current_status
        FROM search_results
    )
    SELECT * FROM with_current_status
    ORDER BY in_current_filter DESC, is_discontinued ASC, product ASC
    LIMIT :limit
"""

GET_SUBSTITUTIONS = """
    SELECT
        s.code_cis_origine,
        s.denomination_origine,
        s.code_cis_cible,
        s.denomination_cible,
        s.score_similarite,
        s.type_equivalence,
        s.raison
    FROM substitution.equivalences_therapeutiques s
    WHERE s.code_cis_origine::TEXT = :code_cis OR s.code_cis_cible::TEXT = :code_cis
    ORDER BY s.score_similarite DESC
"""

GET_EMA_INCIDENTS_BY_CIS = """
    SELECT DISTINCT
        e.incident_id,
        e.title,
        e.product_name,
        e.status,
        e.first_published,
        e.expected_resolution,
        e.reason_for_shortage_fr,
        e.member_states_affected_fr,
        e.summary_fr
    FROM ema_incidents e
    JOIN ema_incidents_cis ec ON ec.incident_id = e.incident_id
    WHERE ec.code_cis = ANY(:codes)
    ORDER BY e.first_published DESC
"""

GET_SALES_BY_CIS = """
    SELECT v.code_cis, v.cip13, v.product_label, v.year, SUM(v.total_boxes) AS total_boxes
    FROM ventes v
    WHERE v.code_cis = ANY(:codes)
    GROUP BY v.code_cis, v.cip13, v.product_label, v.year
    ORDER BY v.code_cis, v.cip13, v.year
"""

GET_ATC_CLASSES = """
    WITH max_date AS (
        SELECT MAX(calculated_end_date) AS max_date FROM incidents
    )
    SELECT DISTINCT
        ca.code || ' - ' || ca.description AS classe_atc,
        m.id AS molecule_id,
        m.name AS molecule
    FROM incidents i
    JOIN produits p ON p.id = i.product_id
    JOIN classes_atc ca ON ca.code = LEFT(p.atc_code, 1)
    LEFT JOIN produits_molecules pm ON pm.produit_id = p.id
    LEFT JOIN molecules m ON m.id = pm.molecule_id
    CROSS JOIN max_date md
    WHERE i.calculated_end_date >= (md.max_date - INTERVAL '1 month' * :months_to_show)
    ORDER BY classe_atc, molecule
"""
