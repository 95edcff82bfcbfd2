"""GraphQL documents used by the sweep."""

RESOURCE_SEARCH = """
query GraphSearch($query: GraphEntityQueryInput, $projectId: String!, $first: Int, $after: String, $fetchTotalCount: Boolean!, $quick: Boolean = true) {
  graphSearch(query: $query, projectId: $projectId, first: $first, after: $after, quick: $quick) {
    totalCount @include(if: $fetchTotalCount)
    maxCountReached @include(if: $fetchTotalCount)
    pageInfo {
      endCursor
      hasNextPage
    }
    nodes {
      entities {
        id
        name
        type
        properties
      }
    }
  }
}
"""

VULNERABILITY_FINDINGS = """
query VulnerabilityFindings($filterBy: VulnerabilityFindingFilters, $first: Int, $after: String) {
  vulnerabilityFindings(filterBy: $filterBy, first: $first, after: $after) {
    nodes {
      id
      name
      detailedName
      version
      fixedVersion
      locationPath
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

REQUEST_UPLOAD = """
query RequestSecurityScanUpload($filename: String!) {
  requestSecurityScanUpload(filename: $filename) {
    upload {
      id
      url
      systemActivityId
    }
  }
}
"""

SYSTEM_ACTIVITY = """
query SystemActivity($id: ID!) {
  systemActivity(id: $id) {
    id
    status
    statusInfo
    result {
      ... on SystemActivityEnrichmentIntegrationResult {
        dataSources { ...IngestionStatsDetails }
        findings { ...IngestionStatsDetails }
        events { ...IngestionStatsDetails }
        tags { ...IngestionStatsDetails }
        unresolvedAssets { ...UnresolvedAssetsDetails }
      }
    }
    context {
      ... on SystemActivityEnrichmentIntegrationContext {
        fileUploadId
      }
    }
  }
}

fragment IngestionStatsDetails on EnrichmentIntegrationStats {
  incoming
  handled
}

fragment UnresolvedAssetsDetails on EnrichmentIntegrationUnresolvedAssets {
  count
  ids
}
"""

__all__ = ["RESOURCE_SEARCH", "VULNERABILITY_FINDINGS", "REQUEST_UPLOAD", "SYSTEM_ACTIVITY"]
